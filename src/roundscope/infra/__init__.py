"""Infrastructure: in-process memo cache."""
