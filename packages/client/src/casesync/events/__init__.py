"""Server event vocabulary — names and payload schemas."""
