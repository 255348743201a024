"""Process bootstrap helpers."""
