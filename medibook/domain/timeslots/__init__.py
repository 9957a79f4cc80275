"""Timeslot domain - bookable windows published by doctors"""
