# src/stakeledger/api/__main__.py
from __future__ import annotations

import uvicorn

from stakeledger.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so STAKELEDGER_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from stakeledger.api.app import create_app
    from stakeledger.runtime.program_config import load_program_config
    from stakeledger.runtime.runtime_logging import configure_structured_logging

    cfg = load_program_config()
    configure_structured_logging(cfg.log_level)

    uvicorn.run(create_app(), host=cfg.api_host, port=cfg.api_port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
