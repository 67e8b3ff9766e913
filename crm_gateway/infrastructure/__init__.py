"""Infrastructure: store clients and session storage."""
