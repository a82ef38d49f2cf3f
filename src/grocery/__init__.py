"""Grocery marketplace fulfillment and dispatch core."""
