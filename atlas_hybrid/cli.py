from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from .config import ServiceConfig
from .errors import EngineInitError
from .logging_config import configure_logging
from .service import AdaptiveLayoutService


def _parse_intent(text: Optional[str]) -> dict:
    if not text:
        return {}
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("--intent must be a JSON object")
    return data


def _build_config(args) -> ServiceConfig:
    base = ServiceConfig.load(args.config) if args.config else None
    config = ServiceConfig.from_env(base)
    if args.state_dir:
        config.state_dir = args.state_dir
    if args.log_level:
        config.log_level = args.log_level.upper()
    return config


def _cmd_decide(service: AdaptiveLayoutService, args) -> int:
    decision = service.decide(
        _parse_intent(args.intent),
        override_action=args.action,
        use_model=not args.no_model,
    )
    print(json.dumps(decision.to_dict(), indent=2))
    return 0


def _cmd_feedback(service: AdaptiveLayoutService, args) -> int:
    recorded = service.feedback(
        action=args.action,
        reward=args.reward,
        context=args.context,
        intent=_parse_intent(args.intent),
    )
    engine = service.engine
    print(f"[recorded={recorded} steps={engine.step_count} epsilon={engine.epsilon:.3f}]")
    return 0 if recorded else 1


def _cmd_stats(service: AdaptiveLayoutService, args) -> int:
    print(json.dumps(service.stats(), indent=2, default=str))
    return 0


def _cmd_reset(service: AdaptiveLayoutService, args) -> int:
    service.reset()
    print("[Engine state reset]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Atlas - adaptive layout decisions with bandits + value network"
    )
    ap.add_argument("--config", help="YAML/JSON config file")
    ap.add_argument("--state-dir", help="Engine state directory (default ./.atlas)")
    ap.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    ap.add_argument("--log-dir", help="Also write rotating human + JSON logs here")

    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("decide", help="Produce a layout and composition for an intent")
    p.add_argument("--intent", help='Intent JSON, e.g. \'{"domain": "blog"}\'')
    p.add_argument("--action", type=int, help="Force a layout action (0-9)")
    p.add_argument("--no-model", action="store_true", help="Use the heuristic layout only")
    p.set_defaults(func=_cmd_decide)

    p = sub.add_parser("feedback", help="Record a reward for an action")
    p.add_argument("--action", type=int, required=True, help="Action that was shown")
    p.add_argument("--reward", type=float, required=True, help="Reward in [-1, 1]")
    p.add_argument("--context", help="Bandit context (defaults to the intent domain)")
    p.add_argument("--intent", help="Intent JSON used to rebuild the state vector")
    p.set_defaults(func=_cmd_feedback)

    p = sub.add_parser("stats", help="Show engine statistics")
    p.set_defaults(func=_cmd_stats)

    p = sub.add_parser("reset", help="Reset learning state")
    p.set_defaults(func=_cmd_reset)

    p = sub.add_parser("serve", help="Run the REST API")
    p.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    p.add_argument("--port", type=int, default=8000, help="Port to bind to")
    p.set_defaults(func=None)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = _build_config(args)
    configure_logging(config.log_level, log_dir=args.log_dir)

    if args.command == "serve":
        from .api import serve
        serve(config, host=args.host, port=args.port)
        return 0

    try:
        service = AdaptiveLayoutService(config)
    except EngineInitError as e:
        print(f"[Engine unavailable: {e}]", file=sys.stderr)
        return 1

    try:
        return args.func(service, args)
    except ValueError as e:
        print(f"[Error: {e}]", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
