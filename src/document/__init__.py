"""Document rendering."""
