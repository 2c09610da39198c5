"""Block-parallel rendering."""
