"""External tool providers."""
