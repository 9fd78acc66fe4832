"""
File: __init__.py
Purpose: Package for the workflow sync pipeline: discovery, tree scanning, definition parsing,
    template dispatch, rendering and remote file sync, orchestrated by service.WorkflowSyncService.
When Used: Imported by the CLI entrypoint and the /workflow-sync router.
Why Created: Groups the scan -> parse -> render -> sync stages so each can be tested alone.
    Kept free of imports so the configuration module can load errors without cycles.
"""
