"""Chat session and history handling."""
