import logging
import sys


class ContextFormatter(logging.Formatter):
    """Custom formatter that handles optional stage and unit fields."""
    def format(self, record):
        # Add default values for stage and unit if not present
        if not hasattr(record, 'stage'):
            record.stage = '-'
        if not hasattr(record, 'unit'):
            record.unit = '-'
        return super().format(record)


def configure_logging(level: str = "INFO") -> None:
    # stdout is reserved for the generation summary
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ContextFormatter(
        "%(asctime)s %(levelname)s %(name)s [stage=%(stage)s unit=%(unit)s] - %(message)s"
    ))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
