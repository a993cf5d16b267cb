"""sql2redis extensions."""
