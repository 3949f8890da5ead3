"""Graph construction and ranking engine."""
