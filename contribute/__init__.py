"""Suggest open, help-wanted issues in the repositories a project depends on.

Reads the project's direct dependencies, maps each one to its GitHub
repository, and lists unassigned issues whose labels ask for outside help:
- "help wanted", "good first issue", "easy", "beginner" (configurable)
- issues from each repository in the order GitHub returns them
- repositories in the order their dependencies are declared
"""

__version__ = "1.0.0"
