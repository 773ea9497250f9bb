"""Terminal host for watchnight background imports."""
