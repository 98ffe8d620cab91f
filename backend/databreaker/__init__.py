"""Data Breaker - discover and remove personal data from data brokers."""
