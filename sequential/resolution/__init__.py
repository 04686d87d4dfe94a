"""Selection resolution pipeline: canonicalize, walk, order, merge."""
