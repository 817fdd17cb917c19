"""
HTML writer worker.

Operation `render` receives a batch of pages and writes one HTML file per
page by filling the HTML template. Runs inside a worker process; everything
it needs arrives in the payload.

Template placeholders (string.Template syntax):
    ${head}  resource hints built from the client manifest
    ${app}   page markup
    ${data}  JSON of the page data (empty object when none)
    ${hash}  build content hash
    ${path}  page path
"""

import importlib.util
import json
from pathlib import Path
from string import Template
from typing import Any, Callable, Optional

DEFAULT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
${head}
</head>
<body>
<div id="app">${app}</div>
<script>window.__DATA__ = ${data};</script>
</body>
</html>
"""

_bundle_cache: dict[str, Callable[[dict], str]] = {}


def _load_bundle(bundle_path: str) -> Optional[Callable[[dict], str]]:
    """Load render(page) from a Python server bundle, cached per process."""
    if bundle_path in _bundle_cache:
        return _bundle_cache[bundle_path]

    path = Path(bundle_path)
    if path.suffix != ".py" or not path.exists():
        return None

    spec = importlib.util.spec_from_file_location("staticforge_server_bundle", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    fn = getattr(module, "render", None)
    if fn is None:
        raise ValueError(f"Server bundle {path} does not define render(page)")
    _bundle_cache[bundle_path] = fn
    return fn


def _resource_hints(manifest_path: Optional[str], hash: str, prefetch: bool, preload: bool) -> str:
    if not manifest_path or not Path(manifest_path).exists():
        return ""

    with open(manifest_path, "r", encoding="utf-8") as f:
        manifest = json.load(f)

    public_path = manifest.get("publicPath", "/")
    links = []
    if preload:
        for asset in manifest.get("initial", []):
            kind = "style" if asset.endswith(".css") else "script"
            links.append(f'<link rel="preload" href="{public_path}{asset}?{hash}" as="{kind}">')
    if prefetch:
        for asset in manifest.get("async", []):
            links.append(f'<link rel="prefetch" href="{public_path}{asset}?{hash}">')
    return "\n".join(links)


def render(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Render a batch of pages.

    Args:
        payload: {hash, pages, htmlTemplate, clientManifestPath,
                  serverBundlePath, prefetch, preload}

    Returns:
        {"rendered": number of pages written}
    """
    template_path = payload.get("htmlTemplate")
    if template_path and Path(template_path).exists():
        template = Template(Path(template_path).read_text(encoding="utf-8"))
    else:
        template = Template(DEFAULT_TEMPLATE)

    hash = payload["hash"]
    head = _resource_hints(
        payload.get("clientManifestPath"),
        hash,
        bool(payload.get("prefetch")),
        bool(payload.get("preload")),
    )
    bundle = _load_bundle(payload["serverBundlePath"]) if payload.get("serverBundlePath") else None

    for page in payload["pages"]:
        markup = bundle(page) if bundle else page.get("context", {}).get("html", "")
        html = template.safe_substitute(
            head=head,
            app=markup,
            data=json.dumps(page.get("data") or {}),
            hash=hash,
            path=page["path"],
        )
        output = Path(page["htmlOutput"])
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(html, encoding="utf-8")

    return {"rendered": len(payload["pages"])}
