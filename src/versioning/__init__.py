"""Version parsing, constraints, toolchain table and conflict models."""
