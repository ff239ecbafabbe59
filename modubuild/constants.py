ENGINE_MODULE_NAME = "modu-engine"
ENGINE_GLOBAL = "window.Modu"
VIRTUAL_NAMESPACE = "cdn-global"
FILE_NAMESPACE = "file"

LOCAL_ENGINE_URL = "http://localhost:3001/dist/modu.min.js"
CDN_ENGINE_URL = "https://cdn.moduengine.com/modu.min.js"

CI_ENV_VARS = ("CI", "GITHUB_ACTIONS")

EXCLUDED_DIR_MARKERS = ("node_modules", "engine")

DEFAULT_DEV_SERVER_PORT = 8081

SQRT_SYMBOL = "dSqrt"
RANDOM_SYMBOL = "dRandom"

_LOADERS_BY_SUFFIX = {
    ".ts": "ts",
    ".tsx": "tsx",
    ".js": "js",
    ".jsx": "jsx",
    ".mjs": "js",
    ".cjs": "js",
}


def loader_for_path(path: str) -> str:
    for suffix, loader in _LOADERS_BY_SUFFIX.items():
        if path.endswith(suffix):
            return loader
    return "js"
