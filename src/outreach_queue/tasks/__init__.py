"""Call task allocation, queue resolution and lifecycle."""
