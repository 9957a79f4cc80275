"""Doctor domain - professional profiles attached to doctor accounts"""
