"""
File: __init__.py
Purpose: Package marker for the integrations layer, which provides async API client classes for
    the remote repository host (GitHub, GitHub Enterprise or Gitea).
When Used: Imported transitively by the workflow sync service and the status endpoint.
Why Created: Keeps outbound API clients decoupled from the sync logic in services.
"""
