"""Review search service: hashing TF-IDF embeddings with brute-force ranking."""
