"""Trader's Journal backend."""
