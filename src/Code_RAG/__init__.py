"""Code RAG core - vector indexing and retrieval for source code artefacts.

Key Responsibilities:
    - Expose the vector store, embedding, indexing, and retrieval layers used by
      the tool server
    - Provide a trivial liveness probe for process supervisors

Collaborators:
    - Upstream: The tool layer imports services from the sub-packages
    - Downstream: ``Code_RAG.services`` and ``Code_RAG.embeddings``

Example:
    >>> from Code_RAG import ping
    >>> ping()
    'pong'
"""


def ping() -> str:
    """Return a simple health check response."""
    return "pong"
