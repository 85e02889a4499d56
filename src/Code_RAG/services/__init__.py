"""Service layer: vector storage, retrieval and indexing."""
