#!/usr/bin/env python3
"""
E-utilities Automater CLI

Searches NCBI for a list of terms in paced batches and writes the fetched
records (raw XML, or one summary line per article with --parse) to a file
or stdout.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from automate import AutomaterState, EutilsAutomater, OutputListener
from config import ConfigManager
from extract.api_client import EutilsClient
from transform.xml_parser import ArticleParser

logger = logging.getLogger(__name__)


class StreamOutputListener(OutputListener):
    """Writes fetched payloads to a text stream and logs notices and errors."""

    def __init__(self, stream: TextIO):
        self.stream = stream
        self.batches = 0

    def on_data(self, payload: str) -> None:
        self.batches += 1
        self.stream.write(payload)
        self.stream.flush()

    def on_notice(self, message: str) -> None:
        logger.warning(message)

    def on_error(self, message: str) -> None:
        logger.error(message)


def format_article(paper: dict) -> str:
    authors = paper['authors']
    first_author = f"{authors[0]} et al." if len(authors) > 1 else (authors[0] if authors else "")
    year = paper['pub_year'] or ""
    return f"{paper['pmid']}\t{year}\t{first_author}\t{paper['title']}\n"


def read_terms(terms: List[str], terms_file: Optional[str]) -> List[str]:
    """Terms from the command line, then one per non-blank line of terms_file."""
    collected = list(terms)
    if terms_file:
        with open(terms_file, 'r') as f:
            collected.extend(line.strip() for line in f if line.strip())
    return collected


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level.upper(),
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        handlers=handlers
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Batch NCBI ESearch/EFetch over a list of terms")
    parser.add_argument("terms", nargs="*", help="Search terms (quote multi-word terms)")
    parser.add_argument("--terms-file", help="File with one search term per line")
    parser.add_argument("--config", help="YAML settings file (see settings-template.yaml)")
    parser.add_argument("--max-retrieval", type=int, help="Terms per search, 1-100")
    parser.add_argument("--max-error-count", type=int, help="Failures tolerated before aborting")
    parser.add_argument("--parse", action="store_true", help="Write one summary line per article instead of raw XML")
    parser.add_argument("--output", help="Output file (default: stdout)")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file", help="Also write logs to this file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    terms = read_terms(args.terms, args.terms_file)
    if not terms:
        logger.error("No search terms given")
        return 2

    config = ConfigManager(args.config)
    with EutilsClient.from_config(config) as client:
        automater = EutilsAutomater(terms, client=client, config=config)

        try:
            if args.max_retrieval is not None:
                automater.set_max_retrieval(args.max_retrieval)
            if args.max_error_count is not None:
                automater.set_max_error_count(args.max_error_count)
        except ValueError as e:
            logger.error(str(e))
            return 2

        output = open(args.output, 'w') if args.output else sys.stdout
        try:
            automater.add_output_listener(StreamOutputListener(output))

            if args.parse:
                automater.set_parser(ArticleParser(callback=lambda paper: output.write(format_article(paper))))

            logger.info(f"Starting automater: {len(terms)} terms, {automater.max_retrieval} per search")
            automater.start()
            automater.join()
        finally:
            if output is not sys.stdout:
                output.close()

    logger.info(f"=== Automater {automater.state.value} ({automater.error_count} errors) ===")
    return 0 if automater.state is AutomaterState.COMPLETED else 1


if __name__ == "__main__":
    sys.exit(main())
