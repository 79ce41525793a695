"""Language package manager adapters (npm, pip)."""
