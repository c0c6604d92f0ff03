"""Connection requests, friendships and relationship notifications."""
