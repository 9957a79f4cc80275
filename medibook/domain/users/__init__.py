"""User domain - accounts, credentials and roles"""
