"""HTTP layer: routing, admission gates and response rendering."""
