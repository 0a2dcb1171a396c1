"""Service layer - normalization, model fallback, heuristics and routing."""
