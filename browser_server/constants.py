"""Chromium launch flags, navigation wait modes, and viewport defaults."""

# ── Browser Launch ───────────────────────────────────────────────────────────

# Tuned for running Chromium inside a minimal container (no GPU, small /dev/shm).
CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-software-rasterizer",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu-sandbox",
    "--no-first-run",
    "--no-zygote",
    "--single-process",
    "--disable-features=VizDisplayCompositor",
]

# ── Navigation ───────────────────────────────────────────────────────────────

DEFAULT_WAIT_UNTIL = "networkidle"

# Puppeteer names are accepted so older clients keep working.
WAIT_UNTIL_ALIASES = {
    "load": "load",
    "domcontentloaded": "domcontentloaded",
    "commit": "commit",
    "networkidle": "networkidle",
    "networkidle0": "networkidle",
    "networkidle2": "networkidle",
}

# ── Viewport ─────────────────────────────────────────────────────────────────

DEFAULT_VIEWPORT = {"width": 800, "height": 600}

# ── Evaluate ─────────────────────────────────────────────────────────────────

# Runs the caller's script as a function body so `return` statements work.
EVALUATE_WRAPPER = "(source) => new Function(source)()"
