"""Request middleware and route guards."""
