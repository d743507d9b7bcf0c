"""Registry package.

This package provides the external version sources:
- pub.py: pub.dev package API (published versions and their constraints)
- releases.py: SDK release tags, used to date a project's creation revision
"""
