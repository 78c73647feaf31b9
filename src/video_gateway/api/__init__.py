"""HTTP API for the video gateway."""
