"""
Workflow Factory: renders a GitHub Actions workflow for every application pipeline definition
found under the apps/ tree of a repository and syncs it into .github/workflows.
"""
__version__ = "1.0.0"
