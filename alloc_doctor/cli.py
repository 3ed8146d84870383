from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from alloc_doctor import __version__ as TOOL_VERSION
from alloc_doctor.contracts import build_run_summary, wrap_payload
from alloc_doctor.exporter import priorities_payload, rules_payload, table_frame, write_export_bundle
from alloc_doctor.inference import generate_rule_recommendations, suggest_all_corrections
from alloc_doctor.issue_taxonomy import explain_check
from alloc_doctor.loader import load_entities, load_workbook_entities
from alloc_doctor.models import ENTITY_KINDS, WEIGHT_FIELDS, BusinessRule, PriorityWeights
from alloc_doctor.reporter import build_validation_report, render_validation_text
from alloc_doctor.rule_compiler import convert_to_rule
from alloc_doctor.sample_data import generate_sample_data
from alloc_doctor.search import search_records
from alloc_doctor.state import AppState
from alloc_doctor.validator import summarize_issues
from alloc_doctor.weights import DEFAULT_WEIGHTS, PRESETS, apply_preset, rescale

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_VALIDATION_ERRORS = 3
EXIT_RULE_NOT_UNDERSTOOD = 4

DEFAULT_CONFIG_NAME = "alloc-doctor.json"
OUTPUT_STAMP_ENV = "ALLOC_DOCTOR_OUTPUT_STAMP"
CONFIG_KEYS = {"strict", "preset", "priority_weights", "rules"}
SAMPLE_FILENAMES = {"client": "clients.csv", "worker": "workers.csv", "task": "tasks.csv"}


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class AllocDoctorArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def timestamp_token() -> str:
    override = os.environ.get(OUTPUT_STAMP_ENV)
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def default_output_dir(command: str) -> Path:
    return Path.cwd() / "alloc-doctor-output" / f"{command}-{timestamp_token()}"


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload) + "\n")


def remove_generated_at(value: Any) -> Any:
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if key == "generated_at":
                result[key] = "1970-01-01T00:00:00Z"
            else:
                result[key] = remove_generated_at(item)
        return result
    if isinstance(value, list):
        return [remove_generated_at(item) for item in value]
    return value


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def refuse_overwrite(path: Path) -> Path:
    if path.exists():
        raise CliError(f"Refusing to overwrite existing output: {path}", EXIT_COMMAND_ERROR)
    return path


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, (FileNotFoundError, KeyError, IndexError)):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (ValueError, UnicodeDecodeError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def error_message(exc: Exception) -> str:
    # KeyError wraps its message in quotes when printed.
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    return str(exc)


# ══════════════════════════════════════════════════════════════════════════════
# CONFIG AND INPUTS
# ══════════════════════════════════════════════════════════════════════════════

def load_config(path: Path | None) -> dict[str, Any]:
    if path is None:
        return {}
    if not path.exists():
        raise CliError(f"Config not found: {path}", EXIT_COMMAND_ERROR)
    if path.suffix.lower() != ".json":
        raise CliError(f"Unsupported config format '{path.suffix}'. Use a .json config.", EXIT_COMMAND_ERROR)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CliError(f"Config is not valid JSON: {exc}", EXIT_PARSE_FAILED) from exc
    if not isinstance(payload, dict):
        raise CliError("Config root must be a JSON object", EXIT_PARSE_FAILED)
    unknown = sorted(set(payload) - CONFIG_KEYS)
    if unknown:
        raise CliError(f"Unknown config keys: {', '.join(unknown)}", EXIT_COMMAND_ERROR)
    return payload


def load_rules_file(path: Path) -> list[BusinessRule]:
    if not path.exists():
        raise CliError(f"Rules file not found: {path}", EXIT_COMMAND_ERROR)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CliError(f"Rules file is not valid JSON: {exc}", EXIT_PARSE_FAILED) from exc
    items = payload.get("rules", []) if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise CliError("Rules file must hold a list of rules or {\"rules\": [...]}", EXIT_PARSE_FAILED)
    return [BusinessRule.from_dict(item) for item in items]


def parse_weight_assignment(text: str) -> tuple[str, float]:
    name, sep, raw = text.partition("=")
    if not sep or not name.strip():
        raise CliError(f"Expected field=value for --set, got '{text}'", EXIT_COMMAND_ERROR)
    try:
        return name.strip(), float(raw)
    except ValueError:
        raise CliError(f"Weight for {name.strip()} must be a number, got '{raw}'", EXIT_COMMAND_ERROR) from None


def initial_weights(config: dict[str, Any], args: argparse.Namespace) -> PriorityWeights:
    preset = getattr(args, "preset", None) or config.get("preset")
    if preset:
        return apply_preset(preset)
    if config.get("priority_weights"):
        return rescale(PriorityWeights.from_dict(config["priority_weights"]))
    return DEFAULT_WEIGHTS


def read_inputs(args: argparse.Namespace) -> tuple[dict[str, list[dict[str, Any]]], dict[str, Path | None], list[str]]:
    if args.sample:
        return generate_sample_data(), {kind: None for kind in ENTITY_KINDS}, []

    if args.workbook:
        path = Path(args.workbook)
        loaded = load_workbook_entities(path)
        data = {kind: loaded[kind] for kind in ENTITY_KINDS}
        return data, {kind: path for kind in ENTITY_KINDS}, loaded["warnings"]

    paths = {
        "client": Path(args.clients) if args.clients else None,
        "worker": Path(args.workers) if args.workers else None,
        "task": Path(args.tasks) if args.tasks else None,
    }
    if not any(paths.values()):
        raise CliError("No input: pass --clients/--workers/--tasks, --workbook or --sample", EXIT_COMMAND_ERROR)

    data: dict[str, list[dict[str, Any]]] = {}
    warnings: list[str] = []
    for kind, path in paths.items():
        if path is None:
            data[kind] = []
            continue
        loaded = load_entities(path, kind)
        data[kind] = loaded["records"]
        warnings.extend(loaded["warnings"])
    return data, paths, warnings


def build_state(args: argparse.Namespace) -> tuple[AppState, dict[str, Path | None], list[str]]:
    config = load_config(Path(args.config) if args.config else None)
    data, paths, warnings = read_inputs(args)

    rules = [BusinessRule.from_dict(item) for item in config.get("rules", [])]
    if getattr(args, "rules", None):
        rules.extend(load_rules_file(Path(args.rules)))

    state = AppState.from_records(
        clients=data["client"],
        workers=data["worker"],
        tasks=data["task"],
        strict=bool(args.strict or config.get("strict", False)),
        business_rules=rules,
        priority_weights=initial_weights(config, args),
    )
    for assignment in getattr(args, "set_weights", None) or []:
        name, value = parse_weight_assignment(assignment)
        state = state.set_weight(name, value)

    if args.verbose:
        emit_human(
            f"Loaded {len(state.clients)} clients, {len(state.workers)} workers, {len(state.tasks)} tasks",
            quiet=args.quiet,
        )
    for warning in warnings:
        emit_human(f"Warning: {warning}", quiet=args.quiet)
    return state, paths, warnings


# ══════════════════════════════════════════════════════════════════════════════
# PARSER
# ══════════════════════════════════════════════════════════════════════════════

def add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--clients", help="Clients file (.csv/.tsv/.txt/.xlsx/.xlsm/.json)")
    parser.add_argument("--workers", help="Workers file")
    parser.add_argument("--tasks", help="Tasks file")
    parser.add_argument("--workbook", help="One workbook with Clients/Workers/Tasks sheets")
    parser.add_argument("--sample", action="store_true", help="Use the built-in demo dataset")
    parser.add_argument("--config", help=f"Project config ({DEFAULT_CONFIG_NAME})")
    parser.add_argument("--strict", action="store_true", help="Report columns outside the entity schema")
    parser.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    parser.add_argument("-v", "--verbose", action="store_true", help="More human logs")


def add_weight_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--preset", choices=sorted(PRESETS), help="Start from a named weight preset")
    parser.add_argument(
        "--set",
        dest="set_weights",
        action="append",
        metavar="FIELD=VALUE",
        help="Change one weight (repeatable); the rest are renormalized",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = AllocDoctorArgumentParser(
        prog="alloc-doctor",
        description="Validate client/worker/task data and derive allocation rules.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Run every validation check.")
    add_input_arguments(validate)
    validate.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    validate.add_argument("--output", help="Explicit report output path")

    recommend = subparsers.add_parser("recommend", help="Suggest business rules from data patterns.")
    add_input_arguments(recommend)
    recommend.add_argument("--rules", help="Existing rules.json to extend")
    recommend.add_argument("--min-confidence", type=float, default=0.0, help="Hide recommendations below this confidence")
    recommend.add_argument("--accept", action="store_true", help="Accept the shown recommendations as rules")
    recommend.add_argument("--save-rules", help="Write the resulting rules.json here (with --accept)")

    corrections = subparsers.add_parser("corrections", help="Suggest field-level data corrections.")
    add_input_arguments(corrections)
    corrections.add_argument("--apply", action="store_true", help="Apply every suggestion and re-validate")
    corrections.add_argument("-o", "--out", dest="out_dir", help="Write the corrected export bundle here (with --apply)")

    search = subparsers.add_parser("search", help="Keyword search across the three collections.")
    search.add_argument("query", help='Query such as "tasks with duration more than 3"')
    add_input_arguments(search)

    rule = subparsers.add_parser("rule", help="Turn a sentence into a business rule.")
    rule.add_argument("text", help='Rule text such as "Tasks T001 and T002 must run together"')
    rule.add_argument("--append", help="Add the rule to this rules.json (created when missing)")
    rule.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    rule.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    weights = subparsers.add_parser("weights", help="Show or adjust priority weights.")
    weights.add_argument("--config", help=f"Project config ({DEFAULT_CONFIG_NAME})")
    add_weight_arguments(weights)
    weights.add_argument("--list-presets", action="store_true", help="List the named presets")
    weights.add_argument("--output", help="Write priorities.json here")
    weights.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    weights.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    export = subparsers.add_parser("export", help="Write cleaned tables, rules and weights.")
    add_input_arguments(export)
    add_weight_arguments(export)
    export.add_argument("--rules", help="rules.json to include")
    export.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    export.add_argument("--xlsx", metavar="NAME", help="Also write a workbook with this file name")

    sample = subparsers.add_parser("sample", help="Write the demo dataset as CSV files.")
    sample.add_argument("-o", "--out", dest="out_dir", default="sample-data", help="Output directory")
    sample.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    explain = subparsers.add_parser("explain", help="Explain a validation check id.")
    explain.add_argument("check_id", help="Check identifier, e.g. unknown-task")
    explain.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default=DEFAULT_CONFIG_NAME, help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


# ══════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ══════════════════════════════════════════════════════════════════════════════

def run_validate(args: argparse.Namespace) -> int:
    try:
        state, paths, warnings = build_state(args)
        report = remove_generated_at(build_validation_report(state, input_paths=paths, warnings=warnings))
        if args.output or args.out_dir:
            output_path = Path(args.output) if args.output else Path(args.out_dir) / "validation.json"
            write_json(output_path, report)
            emit_human(f"Validation report: {output_path}", quiet=args.quiet)
        if args.json:
            maybe_emit_json_stdout(report, True)
        else:
            emit_human(render_validation_text(report, verbose=args.verbose).rstrip(), quiet=args.quiet)
        return EXIT_VALIDATION_ERRORS if report["summary"]["errors"] else EXIT_SUCCESS
    except Exception as exc:
        eprint(error_message(exc))
        return classify_exception(exc)


def render_recommendations_text(recommendations: list[dict[str, Any]]) -> str:
    if not recommendations:
        return "alloc-doctor recommend\nNo recommendations for this data.\n"
    lines = ["alloc-doctor recommend", f"Recommendations: {len(recommendations)}"]
    for item in recommendations:
        lines.append(f"- [{item['type']}] {item['description']} (confidence {item['confidence']:.2f})")
        lines.append(f"    {item['reasoning']}")
    return "\n".join(lines) + "\n"


def run_recommend(args: argparse.Namespace) -> int:
    try:
        if args.save_rules and not args.accept:
            raise CliError("--save-rules requires --accept", EXIT_COMMAND_ERROR)
        state, paths, warnings = build_state(args)
        recommendations = [
            item
            for item in generate_rule_recommendations(state.clients, state.workers, state.tasks)
            if item.confidence >= args.min_confidence
        ]
        if args.accept:
            existing = {rule.id for rule in state.business_rules}
            for item in recommendations:
                if item.id not in existing:
                    state = state.accept_recommendation(item)
        if args.save_rules:
            output_path = Path(args.save_rules)
            write_json(output_path, rules_payload(state.business_rules))
            emit_human(f"Rules written: {output_path}", quiet=args.quiet)

        body = {
            "recommendations": [item.to_dict() for item in recommendations],
            "rules": [rule.to_dict() for rule in state.business_rules],
        }
        run_summary = build_run_summary(
            command="recommend",
            input_paths=paths,
            warnings=warnings,
            metrics={"recommendations": len(recommendations), "rules": len(state.business_rules)},
        )
        payload = remove_generated_at(wrap_payload("alloc_doctor.recommend", body, run_summary))
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(render_recommendations_text(body["recommendations"]).rstrip(), quiet=args.quiet)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(error_message(exc))
        return classify_exception(exc)


def run_corrections(args: argparse.Namespace) -> int:
    try:
        if args.out_dir and not args.apply:
            raise CliError("-o/--out requires --apply", EXIT_COMMAND_ERROR)
        state, paths, warnings = build_state(args)
        corrections = suggest_all_corrections(state.clients, state.workers, state.tasks)
        before = summarize_issues(list(state.validation_errors))
        body: dict[str, Any] = {"corrections": [item.to_dict() for item in corrections]}

        if args.apply:
            for correction in corrections:
                state = state.apply_correction(correction)
            after = summarize_issues(list(state.validation_errors))
            body["applied"] = len(corrections)
            body["validation"] = {"before": before, "after": after}
            if args.out_dir:
                out_dir = refuse_overwrite(Path(args.out_dir))
                result = write_export_bundle(state, out_dir)
                body["files"] = result["files"]
                emit_human(f"Corrected export written: {out_dir}", quiet=args.quiet)

        run_summary = build_run_summary(
            command="corrections",
            input_paths=paths,
            warnings=warnings,
            metrics={"corrections": len(corrections), "applied": body.get("applied", 0)},
        )
        payload = remove_generated_at(wrap_payload("alloc_doctor.corrections", body, run_summary))
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            lines = ["alloc-doctor corrections", f"Suggestions: {len(corrections)}"]
            for item in corrections:
                lines.append(
                    f"- {item.entity} {item.id} {item.field}: {item.current_value} -> {item.suggested_value} "
                    f"(confidence {item.confidence:.2f}) {item.reasoning}"
                )
            if args.apply:
                lines.append(f"Issues before: {before['issue_count']}  after: {body['validation']['after']['issue_count']}")
            emit_human("\n".join(lines), quiet=args.quiet)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(error_message(exc))
        return classify_exception(exc)


def run_search(args: argparse.Namespace) -> int:
    try:
        state, paths, warnings = build_state(args)
        results = search_records(args.query, state.clients, state.workers, state.tasks)
        body = {"query": args.query, "results": [result.to_dict() for result in results]}
        run_summary = build_run_summary(
            command="search",
            input_paths=paths,
            warnings=warnings,
            metrics={"matches": sum(len(result.matches) for result in results)},
        )
        payload = remove_generated_at(wrap_payload("alloc_doctor.search", body, run_summary))
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            lines = [f"alloc-doctor search: {args.query}"]
            if not results:
                lines.append("No matches.")
            for result in results:
                lines.append(f"{result.entity}: {len(result.matches)} match(es) (confidence {result.confidence:.2f})")
                lines.extend(f"- {record.entity_id}" for record in result.matches)
            emit_human("\n".join(lines), quiet=args.quiet)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(error_message(exc))
        return classify_exception(exc)


def run_rule(args: argparse.Namespace) -> int:
    rule = convert_to_rule(args.text)
    if rule is None:
        eprint(f"Could not interpret rule: {args.text!r}")
        eprint('Try phrasings like "Tasks T001 and T002 must run together", '
               '"Limit workers to 3 tasks per phase" or "T003 must only run in phases 1-3".')
        return EXIT_RULE_NOT_UNDERSTOOD
    try:
        if args.append:
            path = Path(args.append)
            rules = load_rules_file(path) if path.exists() else []
            if any(existing.id == rule.id for existing in rules):
                emit_human(f"Rule {rule.id} already present in {path}", quiet=args.quiet)
            else:
                rules.append(rule)
                write_json(path, rules_payload(rules))
                emit_human(f"Rule added to {path}", quiet=args.quiet)
    except Exception as exc:
        eprint(error_message(exc))
        return classify_exception(exc)

    if args.json:
        maybe_emit_json_stdout(rule.to_dict(), True)
    else:
        print(f"{rule.name}: {rule.description}")
        print(json_dumps(rule.parameters))
    return EXIT_SUCCESS


def render_weights_text(weights: PriorityWeights) -> str:
    lines = ["alloc-doctor weights"]
    values = weights.to_dict()
    for camel, _ in WEIGHT_FIELDS:
        lines.append(f"{camel:<16} {values[camel]:.4f}")
    lines.append(f"{'total':<16} {weights.total():.4f}")
    return "\n".join(lines) + "\n"


def run_weights(args: argparse.Namespace) -> int:
    if args.list_presets:
        if args.json:
            maybe_emit_json_stdout(
                {
                    key: {"name": preset["name"], "description": preset["description"], "weights": preset["weights"].to_dict()}
                    for key, preset in PRESETS.items()
                },
                True,
            )
        else:
            for key, preset in PRESETS.items():
                print(f"{key}: {preset['name']} - {preset['description']}")
        return EXIT_SUCCESS

    try:
        config = load_config(Path(args.config) if args.config else None)
        state = AppState(priority_weights=initial_weights(config, args))
        for assignment in args.set_weights or []:
            name, value = parse_weight_assignment(assignment)
            state = state.set_weight(name, value)
        payload = priorities_payload(state.priority_weights)
        if args.output:
            output_path = Path(args.output)
            write_json(output_path, payload)
            emit_human(f"Priorities written: {output_path}", quiet=args.quiet)
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            print(render_weights_text(state.priority_weights).rstrip())
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(error_message(exc))
        return classify_exception(exc)


def run_export(args: argparse.Namespace) -> int:
    try:
        state, paths, warnings = build_state(args)
        if not state.has_data:
            raise CliError("Nothing to export: all three collections are empty", EXIT_COMMAND_ERROR)
        out_dir = refuse_overwrite(Path(args.out_dir) if args.out_dir else default_output_dir("export"))
        result = write_export_bundle(state, out_dir, workbook_name=args.xlsx)

        run_summary = build_run_summary(
            command="export",
            input_paths=paths,
            output_path=out_dir,
            warnings=warnings,
            metrics={"files_written": len(result["files"]), "files_skipped": len(result["skipped"])},
        )
        body = {"files": result["files"], "skipped": result["skipped"], **result["summary"]}
        payload = remove_generated_at(wrap_payload("alloc_doctor.export_summary", body, run_summary))
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(f"Export written: {out_dir}", quiet=args.quiet)
            for path in result["files"]:
                emit_human(f"- {Path(path).name}", quiet=args.quiet)
            if result["skipped"] and args.verbose:
                emit_human(f"Skipped (no rows): {', '.join(result['skipped'])}", quiet=args.quiet)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(error_message(exc))
        return classify_exception(exc)


def run_sample(args: argparse.Namespace) -> int:
    try:
        out_dir = Path(args.out_dir)
        data = generate_sample_data()
        for kind in ENTITY_KINDS:
            refuse_overwrite(out_dir / SAMPLE_FILENAMES[kind])
        out_dir.mkdir(parents=True, exist_ok=True)
        for kind in ENTITY_KINDS:
            path = out_dir / SAMPLE_FILENAMES[kind]
            table_frame(kind, data[kind]).to_csv(path, index=False)
            emit_human(f"Sample written: {path}", quiet=args.quiet)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(error_message(exc))
        return classify_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    payload = {
        "strict": False,
        "preset": None,
        "priority_weights": DEFAULT_WEIGHTS.to_dict(),
        "rules": [],
    }
    write_json(config_path, payload)
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_explain(args: argparse.Namespace) -> int:
    payload = explain_check(args.check_id)
    if payload is None:
        eprint(f"Unknown check id: {args.check_id}")
        return EXIT_COMMAND_ERROR
    if args.json:
        maybe_emit_json_stdout(payload, True)
    else:
        print(
            "\n".join(
                [
                    f"Check: {args.check_id}",
                    f"Severity: {payload['severity']}",
                    f"What it does: {payload['description']}",
                    f"What triggers it: {payload['evidence']}",
                    f"How to fix it: {payload['disable_hint']}",
                ]
            )
        )
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "validate":
            return run_validate(args)
        if args.command == "recommend":
            return run_recommend(args)
        if args.command == "corrections":
            return run_corrections(args)
        if args.command == "search":
            return run_search(args)
        if args.command == "rule":
            return run_rule(args)
        if args.command == "weights":
            return run_weights(args)
        if args.command == "export":
            return run_export(args)
        if args.command == "sample":
            return run_sample(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "explain":
            return run_explain(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
