from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from .config import PipelineConfig
from .errors import PipelineError
from .events import EventKind
from .pipeline import Text2CypherPipeline
from .ui import EventPrinter, style


def _add_connection(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--connection", help="FalkorDB URL (default: FALKORDB_CONNECTION or falkor://127.0.0.1:6379)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="text2cypher",
        description="Ask questions about a FalkorDB graph in natural language.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ask = sub.add_parser("ask", help="Translate a question to Cypher, run it and answer it")
    ask.add_argument("--graph", required=True, help="Graph name")
    ask.add_argument("--question", required=True, help="Natural language question")
    ask.add_argument("--model", help="Model name (default: DEFAULT_MODEL)")
    ask.add_argument("--key", help="Provider API key (default: DEFAULT_KEY or the provider's own env var)")
    ask.add_argument("--cypher-only", action="store_true", help="Stop after generating the query")
    ask.add_argument("--json", action="store_true", help="Print events (or the outcome) as JSON")
    ask.add_argument("--no-stream", action="store_true", help="Wait for the whole run and print the outcome")
    _add_connection(ask)

    schema = sub.add_parser("schema", help="Print the discovered schema of a graph")
    schema.add_argument("--graph", required=True)
    schema.add_argument("--refresh", action="store_true", help="Drop the cached schema first")
    _add_connection(schema)

    graphs = sub.add_parser("graphs", help="List graphs on the server")
    _add_connection(graphs)

    query = sub.add_parser("query", help="Run a Cypher statement and print JSON records")
    query.add_argument("--graph", required=True)
    query.add_argument("--cypher", required=True)
    query.add_argument("--read-only", action="store_true")
    _add_connection(query)

    models = sub.add_parser("models", help="List models offered by a provider")
    models.add_argument("--provider", required=True, choices=["openai", "anthropic", "gemini"])
    models.add_argument("--key")

    return parser


def _run_ask(pipeline: Text2CypherPipeline, args: argparse.Namespace) -> int:
    kwargs = dict(
        model=args.model,
        provider_credential=args.key,
        connection_target=args.connection,
        query_only=args.cypher_only,
    )
    if args.no_stream:
        outcome = pipeline.run_pipeline_blocking(args.graph, args.question, **kwargs)
        if args.json:
            print(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False))
        else:
            color = sys.stdout.isatty()
            if outcome.cypher_query:
                print(style("Cypher:", "mauve", color, bold=True), outcome.cypher_query)
            if outcome.answer:
                print(style("Answer:", "green", color, bold=True), outcome.answer)
            if outcome.error:
                print(style("Error:", "red", color, bold=True), outcome.error, file=sys.stderr)
        return 0 if outcome.ok else 1

    failed = False
    printer = EventPrinter()
    with pipeline.run_pipeline(args.graph, args.question, **kwargs) as stream:
        for event in stream:
            if event.kind == EventKind.ERROR:
                failed = True
            if args.json:
                print(event.to_json(), flush=True)
            else:
                printer.print(event)
    return 1 if failed else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    pipeline = Text2CypherPipeline(PipelineConfig.from_env())

    try:
        if args.command == "ask":
            return _run_ask(pipeline, args)
        if args.command == "schema":
            print(pipeline.get_schema(args.graph, args.connection, refresh=args.refresh))
        elif args.command == "graphs":
            for name in pipeline.list_graphs(args.connection):
                print(name)
        elif args.command == "query":
            print(pipeline.graph_query(args.graph, args.cypher, args.connection, read_only=args.read_only))
        elif args.command == "models":
            for name in pipeline.list_models(args.provider, args.key):
                print(name)
    except PipelineError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
