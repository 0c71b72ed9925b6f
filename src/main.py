import sys
import logging
from typing import List, Optional

from config import EngineConfig
from payments_engine import PaymentsEngine
from record_source import PaymentsInputError

logger = logging.getLogger("payments")

USAGE = "Usage: python main.py <input.csv>"


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print(USAGE, file=sys.stderr)
        return 1

    try:
        config = EngineConfig.from_env()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=config.log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    filepath = args[0]
    engine = PaymentsEngine(
        num_consumers=config.num_consumers,
        freeze_locked_accounts=config.freeze_locked_accounts,
        strict_headers=config.strict_headers,
    )

    try:
        engine.run(filepath, sys.stdout)
        sys.stdout.flush()
    except PaymentsInputError as e:
        logger.error(f"Failed to process {filepath}: {e}")
        return 1
    except OSError as e:
        logger.error(f"I/O error while processing {filepath}: {e}")
        return 1

    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
