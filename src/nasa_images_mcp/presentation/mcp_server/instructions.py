"""
MCP Server Instructions - usage guide returned from ``initialize``.
"""

from __future__ import annotations

SERVER_INSTRUCTIONS = """
NASA Images MCP Server - browse the NASA Image and Video Library

Workflow:
1. search_nasa_images(query="apollo 11")
   Loads one page (up to 20 images) and selects the first one.
2. get_next_image()
   Moves to the next image. Browsing is cyclic: after the last image
   it starts again from the first.
3. get_current_image() or read resource nasa-image://current
   Returns the selected image (the resource returns its URL only).

Notes:
- A new search replaces the previous results and resets the selection.
- get_next_image before any search fails with
  "No active search session. Please search first."
- Results belong to your session only; other clients never see them.
- The viewer UI is available as resource ui://nasa-images/viewer.
""".strip()
