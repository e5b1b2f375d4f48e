from __future__ import annotations

from storyroute.apps.runtime_support import build_generation_runtime
from storyroute.cli import add_request_arguments, base_parser
from storyroute.core.config.loader import load_app_config
from storyroute.core.orchestrator.types import GenerationRequest
from storyroute.core.providers.health import check_configured_providers
from storyroute.core.runtime.errors import GenerationError
from storyroute.core.telemetry.tracing import recent_traces


def _request_from_args(prompt: str, args) -> GenerationRequest:
    return GenerationRequest(
        prompt=prompt,
        engine_id=args.engine_id,
        forced_provider=args.provider,
        temperature=args.temperature,
        max_tokens=args.max_tokens,
    )


def main() -> int:
    parser = base_parser("storyroute-diag", "storyroute routing diagnostics CLI")
    add_request_arguments(parser)
    parser.add_argument("--validate-config", action="store_true")
    parser.add_argument("--engines", action="store_true", help="List the engine registry")
    parser.add_argument("--route", metavar="PROMPT", default=None, help="Show the routing decision for a prompt")
    parser.add_argument("--check-providers", action="store_true")
    parser.add_argument("--skip-provider-tests", action="store_true")
    parser.add_argument("--generate", metavar="PROMPT", default=None, help="Run a generation through the orchestrator")
    parser.add_argument(
        "--recent-traces",
        action="store_true",
        help="Print trace events recorded by this process; combine with --generate",
    )
    args = parser.parse_args()

    did_work = False

    if args.validate_config:
        did_work = True
        try:
            cfg = load_app_config(instance_path=args.config)
        except Exception as exc:  # noqa: BLE001
            print(f"config-invalid error={exc}")
            return 1
        print(
            f"config-valid instance={cfg.instance.name} env={cfg.environment} "
            f"unknown_engine_provider={cfg.routing.unknown_engine_provider}"
        )

    needs_runtime = any([args.engines, args.route, args.check_providers, args.generate])
    runtime = None
    if needs_runtime:
        try:
            runtime = build_generation_runtime(config_path=args.config)
        except ValueError as exc:
            print(f"config-invalid error={exc}")
            return 1

    if args.engines and runtime is not None:
        did_work = True
        print("engines:")
        for engine_id, model in runtime.registry.items():
            print(f"- {engine_id}: model={model} provider={runtime.registry.provider_for(engine_id).value}")

    if args.route and runtime is not None:
        did_work = True
        try:
            request = _request_from_args(args.route, args)
        except ValueError as exc:
            print(f"request-invalid error={exc}")
            return 1
        decision = runtime.orchestrator.route(request)
        print(f"route: provider={decision.provider.value} model={decision.model} reason={decision.reason}")

    if args.check_providers and runtime is not None:
        did_work = True
        results = check_configured_providers(runtime.cfg, runtime.adapters, skip_tests=args.skip_provider_tests)
        print("provider-checks:")
        for item in results.values():
            print(
                f"- {item.provider}: enabled={item.enabled} ok={item.ok} "
                f"latency_ms={item.latency_ms} error={item.error}"
            )

    if args.generate and runtime is not None:
        did_work = True
        try:
            request = _request_from_args(args.generate, args)
        except ValueError as exc:
            print(f"request-invalid error={exc}")
            return 1
        try:
            result = runtime.orchestrator.generate(request)
        except GenerationError as exc:
            print(f"generation-failed error={exc}")
            return 2
        print(
            f"generation: provider={result.provider.value} model={result.model} "
            f"chars={result.metadata.content_length} completion_time_ms={result.metadata.completion_time_ms} "
            f"prompt_tokens={result.metadata.prompt_token_count}"
        )
        print(result.content)

    if args.recent_traces:
        did_work = True
        print("recent-traces:")
        traces = recent_traces(limit=20)
        if not traces:
            print("- none")
        for item in traces:
            print(f"- {item['event']} request={item['request_id']} provider={item['provider']} status={item['status']}")

    if not did_work:
        print("diag-ready (use --validate-config/--engines/--route/--check-providers/--generate/--recent-traces)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
