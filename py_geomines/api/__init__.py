"""HTTP interface for rendering clients."""
