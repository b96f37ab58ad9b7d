# src/refract/api/__main__.py
from __future__ import annotations

import uvicorn

from refract.env import load_dotenv_if_present
from refract.structured_logging import configure_structured_logging


def main() -> None:
    # Load .env early so REFRACT_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from refract.api.app import create_app
    from refract.runtime.chain_config import load_chain_config

    cfg = load_chain_config()
    configure_structured_logging(cfg.log_level)

    uvicorn.run(create_app(), host=cfg.api_host, port=cfg.api_port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
