"""Calendar feed retrieval and booked-day expansion."""
