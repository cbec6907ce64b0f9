"""Language-generation provider boundary: prompt in, text out."""
