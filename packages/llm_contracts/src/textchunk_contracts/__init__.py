"""Request/reply contracts shared by the markdown pipeline."""
