"""
CLI runner for the factorylint engine.

This module provides the main CLI entry point for loading the Ruby adapter,
parsing files, running rules, correcting files and outputting results.
"""

import argparse
import concurrent.futures
import json
import logging
import os
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .config import EngineConfig, find_config_file, get_rule_severity, load_config
from .corrector import Corrector, unified_diff
from .errors import ConfigError, FactorylintError, ParserUnavailableError
from .file_filter import filter_files
from .registry import discover_rules, get_adapter, get_enabled_rules, get_rule_ids, register_adapter
from .schema import ENGINE_VERSION, PROTOCOL_VERSION, findings_to_json, validate_runner_output
from .suppressions import filter_suppressed_findings
from .types import Finding, RuleContext

logger = logging.getLogger(__name__)

LANGUAGE = "ruby"
DEFAULT_RULE_PACKAGES = ["factorylint.rules"]

# Corrections can uncover new offenses (an idiom nested in another's options)
MAX_CORRECTION_PASSES = 10

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_USAGE = 2


@dataclass
class FileResult:
    """Outcome of analyzing one file."""
    file_path: str
    text: str = ""
    findings: List[Finding] = field(default_factory=list)
    parse_ms: float = 0.0
    rules_ms: float = 0.0


def setup_adapters() -> None:
    """Set up and register language adapters."""
    from .ruby_adapter import default_ruby_adapter
    register_adapter(default_ruby_adapter.language_id, default_ruby_adapter)


def collect_files(paths: List[str], config: EngineConfig) -> List[str]:
    """Collect Ruby files under the given paths.

    Vendor, build and VCS directories and the config ``exclude`` patterns are
    checked relative to each given path.
    """
    adapter = get_adapter(LANGUAGE)
    if not adapter:
        logger.error("No adapter registered for language '%s'", LANGUAGE)
        return []

    all_files = []
    for path in paths:
        if not os.path.exists(path):
            logger.warning("Path '%s' does not exist", path)
            continue
        root = path if os.path.isdir(path) else os.path.dirname(os.path.abspath(path))
        found = [os.path.abspath(f) for f in adapter.list_files([path])]
        all_files.extend(filter_files(found, os.path.abspath(root), config.exclude))

    return sorted(set(all_files))


def run_rules(file_path: str, text: str, rules: List, config: EngineConfig) -> FileResult:
    """Parse text and run rules on it, applying severities, the per-file cap and suppressions."""
    result = FileResult(file_path=file_path, text=text)
    adapter = get_adapter(LANGUAGE)
    if not adapter:
        return result

    parse_start = time.perf_counter()
    tree = adapter.parse(text)
    result.parse_ms = (time.perf_counter() - parse_start) * 1000

    context = RuleContext(file_path=file_path, text=text, tree=tree, adapter=adapter)

    rules_start = time.perf_counter()
    findings: List[Finding] = []
    for rule in rules:
        try:
            rule_findings = list(rule.visit(context))
        except Exception:
            logger.exception("Rule '%s' failed on %s", rule.meta.id, file_path)
            continue

        for finding in rule_findings:
            severity = get_rule_severity(finding.rule, config, finding.severity)
            if severity != finding.severity:
                finding = finding._replace(severity=severity)
            findings.append(finding)

        if len(findings) >= config.max_findings_per_file:
            findings = findings[:config.max_findings_per_file]
            break
    result.rules_ms = (time.perf_counter() - rules_start) * 1000

    result.findings = filter_suppressed_findings(findings, text)
    return result


def analyze_file(file_path: str, rules: List, config: EngineConfig,
                 content: Optional[str] = None) -> FileResult:
    """Analyze a single file. Unreadable files are logged and yield no findings."""
    if content is None:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping %s: %s", file_path, e)
            return FileResult(file_path=file_path)

    try:
        return run_rules(file_path, content, rules, config)
    except FactorylintError as e:
        logger.warning("Skipping %s: %s", file_path, e)
        return FileResult(file_path=file_path, text=content)


def run_analysis_parallel(files: List[str], rules: List, config: EngineConfig,
                          jobs: int) -> List[FileResult]:
    """Run analysis on files with optional parallelization, keeping input order."""
    if jobs <= 1:
        results = [analyze_file(file_path, rules, config) for file_path in files]
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=jobs) as executor:
            results = list(executor.map(lambda f: analyze_file(f, rules, config), files))

    total = 0
    for result in results:
        remaining = max(0, config.max_total_findings - total)
        result.findings = result.findings[:remaining]
        total += len(result.findings)
    return results


def autocorrect_text(file_path: str, text: str, rules: List,
                     config: EngineConfig) -> Tuple[str, List[Finding]]:
    """Apply autofixes until the text is stable.

    Returns:
        The corrected text and the findings that remain in it
    """
    findings = run_rules(file_path, text, rules, config).findings
    for _ in range(MAX_CORRECTION_PASSES):
        corrector = Corrector(text)
        accepted = sum(corrector.add_finding(finding) for finding in findings)
        if not accepted:
            break
        text = corrector.corrected()
        findings = run_rules(file_path, text, rules, config).findings
    else:
        logger.warning("%s did not stabilize after %d correction passes", file_path, MAX_CORRECTION_PASSES)
    return text, findings


def correct_results(results: List[FileResult], rules: List, config: EngineConfig,
                    write: bool) -> Tuple[List[str], List[str]]:
    """Correct every file that has fixable findings.

    Each result's findings are replaced by the findings left after correction.

    Returns:
        (paths of changed files, unified diffs of the changes)
    """
    changed, diffs = [], []
    for result in results:
        if not any(finding.autofix for finding in result.findings):
            continue
        corrected, remaining = autocorrect_text(result.file_path, result.text, rules, config)
        if corrected == result.text:
            continue

        diffs.append(unified_diff(result.text, corrected, os.path.relpath(result.file_path)))
        changed.append(result.file_path)
        if write:
            with open(result.file_path, 'w', encoding='utf-8') as f:
                f.write(corrected)
            logger.info("Corrected %s", result.file_path)
            result.text = corrected
            result.findings = remaining
    return changed, diffs


def format_output(findings: List[Finding], files_count: int, rules_count: int, metrics: Dict[str, float],
                  format_type: str, text_cache: Optional[Dict[str, str]] = None,
                  corrected_files: Sequence[str] = ()) -> str:
    """Format output according to specified format."""
    text_cache = text_cache or {}

    if format_type == "json":
        output = {
            "factorylint.protocol": PROTOCOL_VERSION,
            "engine_version": ENGINE_VERSION,
            "files_scanned": files_count,
            "rules_run": rules_count,
            "findings": findings_to_json(findings, text_cache),
            "metrics": metrics,
        }
        if corrected_files:
            output["corrected_files"] = [str(Path(p).resolve()) for p in corrected_files]
        return json.dumps(output, indent=2)

    elif format_type == "pretty":
        adapter = get_adapter(LANGUAGE)
        lines = []

        by_file: Dict[str, List[Finding]] = {}
        for finding in findings:
            by_file.setdefault(finding.file, []).append(finding)

        for file_path, file_findings in sorted(by_file.items()):
            text = text_cache.get(str(Path(file_path).resolve()))
            for finding in file_findings:
                if adapter and text is not None:
                    line, col = adapter.byte_to_linecol(text, finding.start_byte)
                    location = f"{line}:{col}"
                else:
                    location = f"byte {finding.start_byte}"
                lines.append(f"{file_path}:{location}: {finding.severity}: {finding.message} ({finding.rule})")

        for file_path in corrected_files:
            lines.append(f"{file_path}: corrected")

        lines.append("")
        lines.append(f"{files_count} files inspected, {len(findings)} offenses detected, "
                     f"{len(corrected_files)} files corrected")
        lines.append(f"Parse {metrics['parse_ms']:.1f}ms, rules {metrics['rules_ms']:.1f}ms, "
                     f"total {metrics['total_ms']:.1f}ms")
        return "\n".join(lines)

    else:
        raise ValueError(f"Unknown format: {format_type}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="factorylint",
        description="Find and correct repeated factory calls in Ruby test suites",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  factorylint --paths spec/ --format pretty
  factorylint --paths spec/models --rules "factory.*" --autocorrect
  factorylint --paths spec/ --diff
        """
    )

    parser.add_argument(
        "--paths",
        nargs="+",
        required=True,
        help="Paths to files or directories to analyze"
    )

    parser.add_argument(
        "--rules",
        help="Rule patterns to run: '*' for all, or comma-separated IDs/patterns (default: from config)"
    )

    parser.add_argument(
        "--config",
        help="Path to configuration file (default: nearest .factorylint.yml)"
    )

    parser.add_argument(
        "--format",
        choices=["json", "pretty"],
        default="json",
        help="Output format: json (protocol v1) or pretty (human-readable)"
    )

    parser.add_argument(
        "--jobs",
        type=int,
        default=0,
        help="Number of parallel jobs (0=auto, 1=sequential, N=parallel)"
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--autocorrect", "-a",
        action="store_true",
        help="Rewrite files with the suggested corrections"
    )
    mode.add_argument(
        "--diff",
        action="store_true",
        help="Print the corrections as a unified diff without writing files"
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate JSON output against schema"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    total_start = time.perf_counter()

    setup_adapters()
    try:
        get_adapter(LANGUAGE).ensure_parser()
    except ParserUnavailableError as e:
        logger.error("%s", e)
        return EXIT_USAGE

    config_path = args.config or find_config_file(args.paths[0])
    try:
        config = load_config(config_path)
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_USAGE
    logger.debug("Using config: %s", config_path or "defaults")

    rules_discovered = discover_rules(DEFAULT_RULE_PACKAGES)
    logger.debug("Discovered %d rules: %s", rules_discovered, get_rule_ids())

    if args.rules:
        rule_patterns = [pattern.strip() for pattern in args.rules.split(",") if pattern.strip()]
    else:
        rule_patterns = config.enabled_rules
    rules = get_enabled_rules(rule_patterns, LANGUAGE)
    logger.debug("Running %d rules: %s", len(rules), [r.meta.id for r in rules])

    files = collect_files(args.paths, config)
    if not files:
        logger.error("No files found to analyze")
        return EXIT_USAGE
    logger.debug("Found %d files to analyze", len(files))

    jobs = args.jobs
    if jobs == 0:
        jobs = min(4, len(files), os.cpu_count() or 1)

    results = run_analysis_parallel(files, rules, config, jobs)

    corrected_files: List[str] = []
    if args.autocorrect or args.diff:
        corrected_files, diffs = correct_results(results, rules, config, write=args.autocorrect)
        if args.diff:
            sys.stdout.write("".join(diffs))
            findings = [f for result in results for f in result.findings]
            return EXIT_FINDINGS if findings else EXIT_OK

    findings = [f for result in results for f in result.findings]
    metrics = {
        "parse_ms": sum(r.parse_ms for r in results),
        "rules_ms": sum(r.rules_ms for r in results),
        "total_ms": (time.perf_counter() - total_start) * 1000,
    }
    text_cache = {str(Path(r.file_path).resolve()): r.text for r in results}

    output = format_output(findings, len(files), len(rules), metrics, args.format, text_cache, corrected_files)

    if args.validate and args.format == "json":
        errors = validate_runner_output(json.loads(output))
        if errors:
            for error in errors:
                logger.error("JSON validation: %s", error)
            return EXIT_FINDINGS

    print(output)
    return EXIT_FINDINGS if findings else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
