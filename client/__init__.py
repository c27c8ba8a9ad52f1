"""
Interactive client for the chat relay.
"""
