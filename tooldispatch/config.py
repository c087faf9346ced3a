from pydantic import BaseModel
import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Load .env file if it exists (before reading os.getenv)
_env_path = Path(__file__).resolve().parent.parent / ".env"
if _env_path.exists():
    with open(_env_path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                # Only set if not already in environment (env vars take precedence)
                if key not in os.environ:
                    os.environ[key] = value


def _sanitize_ascii(val: str) -> str:
    """Strip non-ASCII characters from config values (prevents encoding errors)"""
    return val.encode('ascii', errors='ignore').decode('ascii').strip()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    # Tool catalogue
    config_path: str = os.getenv("MCP_CONFIG_PATH", "plug.yaml")
    strict_load: bool = _env_flag("STRICT_LOAD")

    # Network
    rpc_host: str = os.getenv("RPC_HOST", "0.0.0.0")
    rpc_port: int = int(os.getenv("RPC_PORT", "1234"))

    # Planner model (sanitized to prevent 'ascii' codec errors)
    openai_api_key: str = _sanitize_ascii(os.getenv("OPENAI_API_KEY", ""))
    openai_base_url: str = _sanitize_ascii(os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"))
    openai_model: str = _sanitize_ascii(os.getenv("OPENAI_MODEL", "gpt-4o"))

    # Deadlines (seconds)
    tool_timeout_s: float = float(os.getenv("TOOL_TIMEOUT", "30"))
    model_timeout_s: float = float(os.getenv("MODEL_TIMEOUT", "30"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

settings = Settings()

# Log config for debugging
_oai_key = '***' + settings.openai_api_key[-4:] if len(settings.openai_api_key) > 4 else 'EMPTY'
logger.info(f"Config: planner → {settings.openai_base_url} (key={_oai_key}), model={settings.openai_model}")
if not settings.openai_api_key:
    logger.warning("Config: OPENAI_API_KEY not set, natural-language planning will fail")
