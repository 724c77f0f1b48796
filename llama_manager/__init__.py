"""Client core for supervising a local llama.cpp server through its manager API."""
