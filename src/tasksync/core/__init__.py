"""Domain building blocks shared by every aggregate."""
