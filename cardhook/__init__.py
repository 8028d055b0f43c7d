"""cardhook - build lifecycle notifications for incoming webhooks"""
__version__ = "0.1.0"
