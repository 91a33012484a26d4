"""Webhook receiving resources."""
