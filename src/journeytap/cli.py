"""
JourneyTap CLI

Command-line interface for distilling browser traces into journeys,
generating Playwright tests from them, and checking replays for
behavioral regressions.

Commands:
    distill     - Distill a trace into journey JSON
    summarize   - Summarize a trace
    generate    - Generate a Playwright test from a trace
    compare     - Compare two traces (semantic by default)
    save        - Save a trace as a named baseline
    list        - List baselines
    update      - Promote the latest capture (or a trace) to baseline
    run         - Replay a baseline with Playwright and compare the result

Examples:
    journeytap summarize trace.json --show-journey
    journeytap generate trace.json --test-name rename-file -o rename-file.spec.ts
    journeytap compare baseline.json captured-trace.json --ignore-api /GetLicense
    journeytap run rename-file
"""

import argparse
import json
import logging
import os
import subprocess
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from . import __version__
from .baselines import BaselineStore
from .common import TraceLoader
from .compare import compare_semantic, compare_steps, format_report
from .config import ConfigError, JourneyConfig
from .distill import distill
from .playwright import PlaywrightGenerator, sanitize_test_name
from .summary import format_summary, summarize
from .trace import TraceFormatError


logger = logging.getLogger("journeytap.cli")

BANNER = "═" * 63


def _load_journey(path: str, config: JourneyConfig, name: Optional[str] = None):
    raw = TraceLoader.load_from_file(path)
    return raw, distill(raw, config.distill, name=name or Path(path).stem)


def cmd_distill(args, config: JourneyConfig) -> int:
    """Write the distilled journey as JSON."""
    _, journey = _load_journey(args.trace, config)
    output = json.dumps(journey.to_dict(), indent=2, ensure_ascii=False)

    if args.output:
        Path(args.output).write_text(output + '\n', encoding='utf-8')
        print(f"✓ Distilled {len(journey.steps)} steps to {args.output}")
    else:
        print(output)
    return 0


def cmd_summarize(args, config: JourneyConfig) -> int:
    _, journey = _load_journey(args.trace, config)
    event_count = TraceLoader(args.trace).count_events()
    print(format_summary(summarize(journey, event_count), show_journey=args.show_journey))
    return 0


def _generator(args, config: JourneyConfig) -> PlaywrightGenerator:
    if getattr(args, 'no_capture', False):
        config.generator.capture_trace = False
    if getattr(args, 'browser_errors', False):
        config.generator.browser_errors = True
    if getattr(args, 'video', False):
        config.generator.record_video = True
    return PlaywrightGenerator(config.generator, config.fill)


def cmd_generate(args, config: JourneyConfig) -> int:
    """Generate a Playwright test from a trace."""
    _, journey = _load_journey(args.trace, config)
    generator = _generator(args, config)

    if not args.output:
        print(generator.generate(journey, args.test_name), end='')
        return 0

    result = generator.write(journey, args.output, args.test_name)
    if not result.success:
        print("❌ Generation Failed", file=sys.stderr)
        for error in result.errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    print(f"✅ Generated {result.output_file} ({result.steps_generated} steps)")
    if result.accessibility_gaps:
        print(f"⚠️  {result.accessibility_gaps} accessibility gap(s) need attention")
    for warning in result.warnings:
        print(f"⚠️  {warning}")
    return 0


def _ignore_apis(args, config: JourneyConfig, store: Optional[BaselineStore] = None) -> List[str]:
    patterns = list(config.compare.ignore_apis)
    if store is not None:
        patterns.extend(store.ignore_apis())
    patterns.extend(getattr(args, 'ignore_api', None) or [])
    return list(dict.fromkeys(patterns))


def cmd_compare(args, config: JourneyConfig) -> int:
    """Compare two traces; exit code 0 when they match."""
    before = TraceLoader.load_from_file(args.before)
    after = TraceLoader.load_from_file(args.after)

    if args.raw:
        report = compare_steps(distill(before, config.distill), distill(after, config.distill))
    else:
        report = compare_semantic(
            before, after,
            ignore_apis=_ignore_apis(args, config),
            strict_navigation=args.strict_navigation or config.compare.strict_navigation,
            form_identifier_field=config.compare.form_identifier_field,
            config=config.distill,
        )

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(format_report(report, show_journey=args.show_journey))
    return 0 if report.match else 1


def cmd_save(args, config: JourneyConfig) -> int:
    store = BaselineStore(config.paths)
    path = store.save(args.trace, args.name)
    print(f"✓ Saved baseline: {args.name} ({path})")

    _, journey = _load_journey(str(path), config, args.name)
    print(format_summary(summarize(journey, TraceLoader(path).count_events()), show_journey=True))
    return 0


def cmd_list(args, config: JourneyConfig) -> int:
    baselines = BaselineStore(config.paths).list()
    print("Baseline-based tests (recorded journeys):")
    if not baselines:
        print("  (none)")
    for info in baselines:
        events = f"{info.event_count} events" if info.event_count is not None else "text export"
        print(f"  {info.name} ({events})")
    return 0


def cmd_update(args, config: JourneyConfig) -> int:
    path = BaselineStore(config.paths).update(args.name, args.trace)
    print(f"✓ Updated baseline: {args.name} ({path})")
    return 0


def _error_excerpt(output: str, limit: int = 15) -> List[str]:
    """Lines from the first 'Error:' onwards in Playwright's output."""
    lines = output.splitlines()
    for i, line in enumerate(lines):
        if 'Error:' in line:
            return lines[i:i + limit]
    return []


def cmd_run(args, config: JourneyConfig) -> int:
    """
    Replay a baseline and compare the re-captured trace against it.

    Succeeds when the semantic comparison matches, even if a selector
    failed along the way.
    """
    store = BaselineStore(config.paths)
    baseline = store.load(args.name)
    journey = distill(baseline, config.distill, name=args.name)

    work_dir = Path(config.paths.generated_dir).resolve()
    test_file = work_dir / f"generated-{sanitize_test_name(args.name)}.spec.ts"
    captured = work_dir / config.generator.trace_output_default

    generator = _generator(args, config)
    result = generator.write(journey, test_file, args.name)
    if not result.success:
        print(f"❌ Could not generate test: {', '.join(result.errors)}", file=sys.stderr)
        return 1
    print(f"Generated: {test_file}")

    if captured.exists():
        captured.unlink()

    env = dict(os.environ)
    env[config.generator.trace_output_env] = str(captured)

    command = list(config.paths.playwright_command) + [test_file.name]
    logger.debug(f"Running {' '.join(command)} in {work_dir}")
    try:
        proc = subprocess.run(command, cwd=str(work_dir), env=env, capture_output=True, text=True)
    finally:
        if not args.keep:
            test_file.unlink(missing_ok=True)

    output = (proc.stdout or '') + (proc.stderr or '')

    print(BANNER)
    print(f"                    REGRESSION TEST: {args.name}")
    print(BANNER)

    if proc.returncode == 0:
        print("✅ PASS - Journey completed successfully")
    else:
        print("❌ FAIL - Replay error (see below)")
        for line in _error_excerpt(output):
            print(line)

    matched = False
    if captured.exists():
        store.store_capture(args.name, captured)
        report = compare_semantic(
            baseline, TraceLoader.load_from_file(captured),
            ignore_apis=_ignore_apis(args, config, store),
            strict_navigation=config.compare.strict_navigation,
            form_identifier_field=config.compare.form_identifier_field,
            config=config.distill,
        )
        print(format_report(report))
        matched = report.match
        if matched:
            print("SEMANTIC: PASS - Same APIs, forms, and context menus")
        else:
            print("SEMANTIC: FAIL - Behavioral regression detected")
    else:
        print("⚠️  No trace captured (test may have failed before any actions)")

    print(BANNER)
    return 0 if matched else 1


COMMANDS = {
    'distill': cmd_distill,
    'summarize': cmd_summarize,
    'generate': cmd_generate,
    'compare': cmd_compare,
    'save': cmd_save,
    'list': cmd_list,
    'update': cmd_update,
    'run': cmd_run,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='journeytap',
        description="JourneyTap - Distill browser traces into journeys and catch behavioral regressions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show what a recorded trace did
  %(prog)s summarize trace.json --show-journey

  # Generate a Playwright test
  %(prog)s generate trace.json --test-name rename-file -o rename-file.spec.ts

  # Compare two captures by outcome, ignoring a noisy endpoint
  %(prog)s compare before.json after.json --ignore-api /GetLicense

  # Baseline workflow
  %(prog)s save trace.json rename-file
  %(prog)s run rename-file
  %(prog)s update rename-file
        """
    )
    parser.add_argument('--config', '-c', help='Config file (default: ./journeytap.yaml if present)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- DISTILL command ---
    distill_parser = subparsers.add_parser('distill', help='Distill a trace into journey JSON')
    distill_parser.add_argument('trace', help='Trace file (JSON log or text export)')
    distill_parser.add_argument('-o', '--output', help='Write journey JSON to file')

    # --- SUMMARIZE command ---
    summarize_parser = subparsers.add_parser('summarize', help='Summarize a trace')
    summarize_parser.add_argument('trace', help='Trace file')
    summarize_parser.add_argument('--show-journey', action='store_true', help='Show step-by-step journey')

    # --- GENERATE command ---
    generate_parser = subparsers.add_parser('generate', help='Generate a Playwright test')
    generate_parser.add_argument('trace', help='Trace file')
    generate_parser.add_argument('--test-name', default='user-journey', help='Test name (default: user-journey)')
    generate_parser.add_argument('--no-capture', action='store_true', help='Omit trace re-capture scaffolding')
    generate_parser.add_argument('--browser-errors', action='store_true', help='Report browser console errors')
    generate_parser.add_argument('-o', '--output', help='Output .spec.ts file (default: stdout)')

    # --- COMPARE command ---
    compare_parser = subparsers.add_parser('compare', help='Compare two traces')
    compare_parser.add_argument('before', help='Baseline trace')
    compare_parser.add_argument('after', help='New trace')
    compare_parser.add_argument('--raw', action='store_true', help='Compare step by step instead of by outcome')
    compare_parser.add_argument('--ignore-api', action='append', metavar='PATTERN',
                                help='Endpoint substring to ignore (repeatable)')
    compare_parser.add_argument('--strict-navigation', action='store_true',
                                help='Fail on navigation differences')
    compare_parser.add_argument('--show-journey', action='store_true', help='Show both journeys')
    compare_parser.add_argument('--json', action='store_true', help='Print the report as JSON')

    # --- SAVE command ---
    save_parser = subparsers.add_parser('save', help='Save a trace as a baseline')
    save_parser.add_argument('trace', help='Trace file')
    save_parser.add_argument('name', help='Journey name')

    # --- LIST command ---
    subparsers.add_parser('list', help='List baselines')

    # --- UPDATE command ---
    update_parser = subparsers.add_parser('update', help='Promote a capture to baseline')
    update_parser.add_argument('name', help='Journey name')
    update_parser.add_argument('trace', nargs='?', help='Trace to promote (default: latest capture)')

    # --- RUN command ---
    run_parser = subparsers.add_parser('run', help='Replay a baseline and compare')
    run_parser.add_argument('name', help='Journey name')
    run_parser.add_argument('--video', action='store_true', help="Record a video (sets video: 'on' in the generated test)")
    run_parser.add_argument('--keep', action='store_true', help='Keep the generated spec file')
    run_parser.add_argument('--ignore-api', action='append', metavar='PATTERN',
                            help='Endpoint substring to ignore (repeatable)')
    run_parser.add_argument('--browser-errors', action='store_true', help='Report browser console errors')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s %(name)s: %(message)s',
    )

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        config = JourneyConfig.load(args.config)
        return handler(args, config)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130

    except (TraceFormatError, ConfigError, FileNotFoundError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    except Exception as e:
        print(f"\n❌ Unexpected error: {e}", file=sys.stderr)
        if args.verbose:
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
