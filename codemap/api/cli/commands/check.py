"""Check command module - verify the configured language model responds."""

import argparse
import sys

from codemap.core.config.config import Config

from ..utils import create_llm_manager


async def check_command(args: argparse.Namespace, config: Config) -> None:
    """Send a tiny completion and report the provider's health."""
    del args
    try:
        llm_manager = create_llm_manager(config)
    except ValueError as e:
        print(f"LLM provider setup failed: {e}", file=sys.stderr)
        sys.exit(1)

    if llm_manager is None:
        missing = ", ".join(config.llm.get_missing_config())
        print(f"Not configured (missing: {missing})", file=sys.stderr)
        sys.exit(1)

    status = await llm_manager.health_check()
    print(f"{status.get('provider', config.llm.provider)} {config.llm.model}: {status['status']}")
    if status["status"] != "healthy":
        print(f"  {status.get('error', 'no details')}", file=sys.stderr)
        sys.exit(1)
