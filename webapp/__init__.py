"""HTTP surface and shared runtime singletons."""
