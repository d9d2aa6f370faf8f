"""
Orders app: session carts, checkout intents and order intake.
"""
