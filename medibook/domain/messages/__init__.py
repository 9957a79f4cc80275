"""Message domain - direct messages between users"""
