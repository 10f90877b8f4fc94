"""Artifact download, workspace, and acquisition services."""
