"""BookHarmony: personal book-collection tracking against a remote backend proxy."""
