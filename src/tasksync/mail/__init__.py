"""Email rendering and delivery."""
