"""Analysis records, previews, player identity and statistics."""
