"""Appointment domain - booking, rescheduling and cancellation"""
