"""Bot website web layer."""
