"""
Tool and resource declarations advertised through ``tools/list`` and
``resources/list``.

Tool input schemas come from the argument models in
:mod:`nasa_images_mcp.application.browse.operations`, so the advertised
shape and the validated shape cannot drift apart.
"""

from __future__ import annotations

from mcp.types import Resource, Tool

from nasa_images_mcp.application.browse import (
    CURRENT_IMAGE_URI,
    CURRENT_TOOL,
    NEXT_TOOL,
    SEARCH_TOOL,
    NoArguments,
    SearchArguments,
    arguments_schema,
)

VIEWER_URI = "ui://nasa-images/viewer"
VIEWER_MIME_TYPE = "text/html;profile=mcp-app"
CURRENT_IMAGE_MIME_TYPE = "text/uri-list"

_UI_META = {"ui": {"resourceUri": VIEWER_URI}}


def _tool(name: str, description: str, arguments: type) -> Tool:
    return Tool.model_validate(
        {
            "name": name,
            "description": description,
            "inputSchema": arguments_schema(arguments),
            "_meta": _UI_META,
        }
    )


TOOLS: tuple[Tool, ...] = (
    _tool(
        SEARCH_TOOL,
        "Search NASA image library and display results in an interactive UI",
        SearchArguments,
    ),
    _tool(NEXT_TOOL, "Get the next image from current search results", NoArguments),
    _tool(CURRENT_TOOL, "Describe the image currently selected in the search results", NoArguments),
)

RESOURCES: tuple[Resource, ...] = (
    Resource.model_validate(
        {
            "uri": VIEWER_URI,
            "name": "NASA Images Viewer",
            "description": "Interactive viewer for NASA images",
            "mimeType": VIEWER_MIME_TYPE,
        }
    ),
    Resource.model_validate(
        {
            "uri": CURRENT_IMAGE_URI,
            "name": "current_nasa_image_url",
            "description": "Image URL of the currently selected search result",
            "mimeType": CURRENT_IMAGE_MIME_TYPE,
        }
    ),
)

VIEWER_HTML = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>NASA Images Viewer</title>
  <style>
    body { font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px;
           background: #0a0e27; color: #fff; }
    .container { background: #1a1f3a; border-radius: 10px; padding: 20px; }
    h1 { color: #4a9eff; margin-top: 0; }
    input[type="text"] { width: 70%; padding: 10px; font-size: 16px; border: 1px solid #4a9eff;
                         border-radius: 5px; background: #0a0e27; color: #fff; }
    button { padding: 10px 20px; font-size: 16px; background: #4a9eff; color: white; border: none;
             border-radius: 5px; cursor: pointer; margin-left: 10px; }
    button:disabled { background: #666; cursor: not-allowed; }
    .image-container { text-align: center; margin: 20px 0; }
    img { max-width: 100%; height: auto; border-radius: 8px; }
    .error { color: #ff4444; padding: 10px; background: #331111; border-radius: 5px; }
    .controls { text-align: center; margin-top: 20px; }
  </style>
</head>
<body>
  <div class="container">
    <h1>NASA Images Explorer</h1>
    <div>
      <input type="text" id="searchQuery" placeholder="Search NASA images (e.g., apollo 11, mars rover)">
      <button onclick="searchImages()">Search</button>
    </div>
    <div id="imageContainer" class="image-container">
      <p>Search for NASA images to get started</p>
    </div>
    <div class="controls">
      <button id="nextBtn" onclick="nextImage()" disabled>Next Image</button>
    </div>
  </div>
  <script>
    function post(message) {
      if (window.parent) { window.parent.postMessage(message, '*'); }
    }
    function loadCurrentImage() {
      post({ type: 'readResource', uri: 'nasa-image://current' });
    }
    function searchImages() {
      const query = document.getElementById('searchQuery').value.trim();
      if (!query) { return; }
      document.getElementById('imageContainer').innerHTML = '<p>Searching...</p>';
      document.getElementById('nextBtn').disabled = true;
      post({ type: 'callTool', tool: 'search_nasa_images', arguments: { query: query } });
      setTimeout(loadCurrentImage, 1000);
    }
    function nextImage() {
      document.getElementById('nextBtn').disabled = true;
      post({ type: 'callTool', tool: 'get_next_image', arguments: {} });
      setTimeout(loadCurrentImage, 500);
    }
    function updateImage(imageUrl) {
      const container = document.getElementById('imageContainer');
      if (!imageUrl) {
        container.innerHTML = '<p class="error">No image available</p>';
        return;
      }
      const img = document.createElement('img');
      img.src = imageUrl;
      img.alt = 'NASA Image';
      container.replaceChildren(img);
      document.getElementById('nextBtn').disabled = false;
    }
    window.addEventListener('message', (event) => {
      if (event.data && event.data.type === 'resourceData') { updateImage(event.data.data); }
    });
  </script>
</body>
</html>
"""
