"""MediBook API - doctor appointment booking backend"""
