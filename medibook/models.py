import enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Role(str, enum.Enum):
    customer = "customer"
    doctor = "doctor"
    admin = "admin"


class TimeslotStatus(str, enum.Enum):
    available = "available"
    booked = "booked"
    unavailable = "unavailable"


class AppointmentStatus(str, enum.Enum):
    confirmed = "confirmed"
    canceled = "canceled"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(Role, name="user_role", native_enum=False, length=20), nullable=False)
    profile_image_url = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Dependent rows are deleted explicitly by the repositories; the ORM never nulls their FKs
    doctor_profile = relationship(
        "Doctor", back_populates="user", uselist=False, passive_deletes="all"
    )
    appointments = relationship("Appointment", back_populates="customer", passive_deletes="all")
    sent_messages = relationship(
        "Message", back_populates="sender", foreign_keys="Message.sender_id", passive_deletes="all"
    )
    received_messages = relationship(
        "Message", back_populates="receiver", foreign_keys="Message.receiver_id", passive_deletes="all"
    )


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    specialty = Column(String(100), nullable=False)
    degree = Column(String(100), nullable=False)
    experience = Column(Integer, nullable=False)  # years in practice
    about = Column(Text, nullable=True)
    fees = Column(Numeric(8, 2), nullable=False)
    address_line1 = Column(String(255), nullable=False)
    address_line2 = Column(String(255), nullable=True)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=False)
    profile_image_url = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="doctor_profile")
    timeslots = relationship("Timeslot", back_populates="doctor", passive_deletes="all")


class Timeslot(Base):
    __tablename__ = "timeslots"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), index=True, nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(
        Enum(TimeslotStatus, name="timeslot_status", native_enum=False, length=20),
        nullable=False,
        default=TimeslotStatus.available,
    )
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("Doctor", back_populates="timeslots")
    appointments = relationship("Appointment", back_populates="timeslot", passive_deletes="all")


class Appointment(Base):
    __tablename__ = "appointments"
    # One confirmed appointment per timeslot; canceled rows may pile up beside it
    __table_args__ = (
        Index(
            "uq_appointments_confirmed_timeslot",
            "timeslot_id",
            unique=True,
            sqlite_where=text("status = 'confirmed'"),
            postgresql_where=text("status = 'confirmed'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    timeslot_id = Column(Integer, ForeignKey("timeslots.id"), index=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    booking_date = Column(DateTime, server_default=func.now())
    status = Column(
        Enum(AppointmentStatus, name="appointment_status", native_enum=False, length=20),
        nullable=False,
        default=AppointmentStatus.confirmed,
    )
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    timeslot = relationship("Timeslot", back_populates="appointments")
    customer = relationship("User", back_populates="appointments")


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    receiver_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    timestamp = Column(DateTime, server_default=func.now())

    sender = relationship("User", back_populates="sent_messages", foreign_keys=[sender_id])
    receiver = relationship("User", back_populates="received_messages", foreign_keys=[receiver_id])
