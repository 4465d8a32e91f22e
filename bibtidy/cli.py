#!/usr/bin/env python3
"""Command line front end for bibtidy."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional, Union

from bibtidy.options import Options
from bibtidy.tidy import TidyResult, tidy


OPTION_DESTS = (
    "omit",
    "curly",
    "numeric",
    "space",
    "tab",
    "align",
    "sort",
    "duplicates",
    "merge",
    "strip_enclosing_braces",
    "drop_all_caps",
    "escape",
    "sort_fields",
    "strip_comments",
    "trailing_commas",
    "encode_urls",
    "tidy_comments",
    "remove_empty_fields",
    "remove_dupe_fields",
    "generate_keys",
    "max_authors",
    "lowercase",
    "enclosing_braces",
    "wrap",
)
# flags whose value is optional and so may swallow a following input path
OPTIONAL_VALUE_DESTS = (
    "space",
    "align",
    "sort",
    "duplicates",
    "merge",
    "sort_fields",
    "generate_keys",
    "enclosing_braces",
    "wrap",
)
NUMBER_DESTS = ("space", "align", "wrap")


def csv_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def int_or_text(value: str) -> Union[int, str]:
    return int(value) if value.strip().isdigit() else value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bibtidy",
        description="Tidy BibTeX files: normalize values, merge duplicates, sort and re-key entries.",
        epilog=(
            "Options shown with [=VALUE] take their value in the --flag=VALUE form. "
            "Every tidy option can be turned off with --no-<option>."
        ),
    )
    parser.add_argument("inputs", nargs="*", help="Input .bib files ('-' reads stdin)")
    parser.add_argument("-o", "--output", help="Write the result to this path")
    parser.add_argument(
        "-m",
        "--modify",
        action="store_true",
        help="Rewrite each input file in place",
    )
    parser.add_argument(
        "--no-backup",
        dest="backup",
        action="store_false",
        help="Do not keep <file>.original when modifying in place",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress warnings")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    group = parser.add_argument_group("tidy options")
    group.add_argument("--omit", type=csv_list, default=[], help="Fields to remove")
    group.add_argument("--curly", action="store_true", help="Enclose values in braces")
    group.add_argument("--numeric", action="store_true", help="Unwrap numeric and month values")
    group.add_argument(
        "--space",
        nargs="?",
        type=int_or_text,
        const=True,
        default=False,
        metavar="N",
        help="Indent with N spaces (--space=N)",
    )
    group.add_argument("--tab", action="store_true", help="Indent with tabs")
    group.add_argument(
        "--align",
        nargs="?",
        type=int_or_text,
        const=True,
        default=False,
        metavar="N",
        help="Align values, optionally at column N (--align=N)",
    )
    group.add_argument(
        "--sort",
        nargs="?",
        type=csv_list,
        const=True,
        default=False,
        metavar="KEYS",
        help="Sort entries by these keys (--sort=year,-key)",
    )
    group.add_argument(
        "--duplicates",
        nargs="?",
        type=csv_list,
        const=True,
        default=False,
        metavar="CHECKS",
        help="Duplicate checks: key, doi, abstract, citation (--duplicates=doi,key)",
    )
    group.add_argument(
        "--merge",
        nargs="?",
        const=True,
        default=None,
        metavar="STRATEGY",
        help="Merge duplicates: first, last, combine or overwrite (--merge=first)",
    )
    group.add_argument("--strip-enclosing-braces", action="store_true", help="Strip double braces")
    group.add_argument("--drop-all-caps", action="store_true", help="Title-case all-caps values")
    group.add_argument("--escape", action="store_true", help="Escape special characters")
    group.add_argument(
        "--sort-fields",
        nargs="?",
        type=csv_list,
        const=True,
        default=False,
        metavar="NAMES",
        help="Sort fields, optionally in this order (--sort-fields=title,year)",
    )
    group.add_argument("--strip-comments", action="store_true", help="Remove comments")
    group.add_argument("--trailing-commas", action="store_true", help="Comma after the last field")
    group.add_argument("--encode-urls", action="store_true", help="Percent-encode URLs")
    group.add_argument("--tidy-comments", action="store_true", help="Trim whitespace around comments")
    group.add_argument("--remove-empty-fields", action="store_true", help="Remove empty fields")
    group.add_argument("--remove-dupe-fields", action="store_true", help="Keep one field per name")
    group.add_argument(
        "--generate-keys",
        nargs="?",
        const=True,
        default=False,
        metavar="TEMPLATE",
        help="Regenerate keys, optionally from a template (--generate-keys=[auth][year])",
    )
    group.add_argument("--max-authors", type=int, default=None, help="Truncate longer author lists")
    group.add_argument("--lowercase", action="store_true", help="Lowercase field names and entry types")
    group.add_argument(
        "--enclosing-braces",
        nargs="?",
        type=csv_list,
        const=True,
        default=False,
        metavar="NAMES",
        help="Fields to wrap in double braces (--enclosing-braces=title)",
    )
    group.add_argument(
        "--wrap",
        nargs="?",
        type=int_or_text,
        const=True,
        default=False,
        metavar="N",
        help="Wrap values at column N (--wrap=N)",
    )
    for dest in OPTION_DESTS:
        parser.add_argument(
            f"--no-{dest.replace('_', '-')}",
            dest=dest,
            action="store_const",
            const=parser.get_default(dest),
            help=argparse.SUPPRESS,
        )
    return parser


def reclaim_inputs(
    parser: argparse.ArgumentParser, args: argparse.Namespace, argv: List[str]
) -> None:
    """Move input paths taken as the value of an optional-value flag back to the inputs."""
    for dest in OPTIONAL_VALUE_DESTS:
        value = getattr(args, dest)
        path = value[0] if isinstance(value, list) and len(value) == 1 else value
        if isinstance(path, str) and (path == "-" or os.path.isfile(path)):
            setattr(args, dest, True)
            args.inputs.append(path)
        elif dest in NUMBER_DESTS and isinstance(value, str):
            parser.error(f"argument --{dest}: expected a number, got {value!r}")
    if not args.inputs:
        parser.error("the following arguments are required: inputs")
    position = {arg: idx for idx, arg in enumerate(argv)}
    args.inputs.sort(key=lambda path: position.get(path, len(position)))


def options_from_args(args: argparse.Namespace) -> Options:
    return Options(
        omit=args.omit,
        curly=args.curly,
        numeric=args.numeric,
        space=args.space,
        tab=args.tab,
        align=args.align,
        sort=args.sort,
        duplicates=args.duplicates,
        merge=args.merge,
        strip_enclosing_braces=args.strip_enclosing_braces,
        drop_all_caps=args.drop_all_caps,
        escape=args.escape,
        sort_fields=args.sort_fields,
        strip_comments=args.strip_comments,
        trailing_commas=args.trailing_commas,
        encode_urls=args.encode_urls,
        tidy_comments=args.tidy_comments,
        remove_empty_fields=args.remove_empty_fields,
        remove_duplicate_fields=args.remove_dupe_fields,
        generate_keys=args.generate_keys,
        max_authors=args.max_authors,
        lowercase=args.lowercase,
        enclosing_braces=args.enclosing_braces,
        wrap=args.wrap,
    )


def read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def write_text(path: str, text: str) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(text)


def report(result: TidyResult, label: str, quiet: bool) -> None:
    if quiet:
        return
    for warning in result.warnings:
        print(f"{label}: {warning}", file=sys.stderr)
    print(f"{label}: tidied {result.count} entries", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    args = parser.parse_args(argv)
    reclaim_inputs(parser, args, argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    for path in args.inputs:
        if path != "-" and not os.path.isfile(path):
            print(f"Not found: {path}", file=sys.stderr)
            return 1

    options = options_from_args(args)
    if args.modify:
        for path in args.inputs:
            text = read_input(path)
            result = tidy(text, options)
            report(result, path, args.quiet)
            if path == "-":
                sys.stdout.write(result.bibtex)
                continue
            if args.backup:
                write_text(f"{path}.original", text)
            write_text(path, result.bibtex)
        return 0

    text = "\n".join(read_input(path) for path in args.inputs)
    result = tidy(text, options)
    report(result, args.output or "stdout", args.quiet)
    if args.output:
        write_text(args.output, result.bibtex)
    else:
        sys.stdout.write(result.bibtex)
    return 0


if __name__ == "__main__":
    sys.exit(main())
