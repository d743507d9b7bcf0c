"""Project files: manifest reader/writer, version signals and dependency graph."""
