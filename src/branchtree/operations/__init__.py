"""Core tree operations: lineage, branches, forks, merges, tree assembly."""
