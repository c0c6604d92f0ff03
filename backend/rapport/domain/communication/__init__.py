"""Communication gate and call sessions."""
