"""Per-chat session middleware and the stores that persist sessions."""