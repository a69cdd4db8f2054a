"""Circuit intermediate representation and the built-in gate catalog."""
