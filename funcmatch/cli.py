"""Check that functions in a rebuilt object match the reference image.

Usage:
    funcmatch <image> <symbols.csv> <object> <symbol>
    funcmatch <image> <symbols.csv> <object> --all [--report out.json]
"""
import argparse
import json
import logging
from pathlib import Path
from typing import Dict, List

from . import __version__
from .compare import Identical, compare_symbol, describe
from .config import address_setting, load_config
from .decode import Decoder
from .dump import DEFAULT_FLAGS, DEFAULT_TOOL, run_dump_tool, scan_dump, select_symbol
from .errors import AmbiguousSymbolError, FuncmatchError, SymbolNotFoundError
from .image import DEFAULT_BASE_ADDRESS, load_image
from .symbols import Symbol, load_symbols


def print_listing(symbol: Symbol, reference: List[int], candidate: List[int],
                  decoder: Decoder) -> None:
    """Print original and rebuilt instructions next to each other."""
    print(f"{symbol.name}:")
    original = decoder.decode_all(reference)
    rebuilt = decoder.decode_all(candidate)
    for index in range(max(len(original), len(rebuilt))):
        address = symbol.start + index * 4
        ours = original[index] if index < len(original) else ""
        theirs = rebuilt[index] if index < len(rebuilt) else ""
        mark = " " if ours == theirs else "*"
        print(f"0x{address:08X}: {mark} {ours:<32} {theirs}")


def check_one(args, symbols: Dict[str, Symbol], image, functions, decoder) -> None:
    symbol = symbols.get(args.symbol)
    if symbol is None:
        raise SystemExit(f"symbol {args.symbol} is not listed in {args.symbols}")
    candidate = select_symbol(functions, symbol.name, source=args.symbols)
    if args.list:
        print_listing(symbol, image.instructions(symbol), candidate, decoder)
    result = compare_symbol(symbol, image, candidate, decoder)
    if not isinstance(result, Identical):
        raise SystemExit(f"{symbol.name}: {describe(result, symbol)}")
    print("identical")


def check_all(args, symbols: Dict[str, Symbol], image, functions, decoder) -> None:
    entries = []
    failed = 0
    for symbol in symbols.values():
        entry = {"symbol": symbol.name, "address": f"0x{symbol.start:08X}"}
        try:
            candidate = select_symbol(functions, symbol.name, source=args.symbols)
        except SymbolNotFoundError as exc:
            entry.update(status="missing", detail=str(exc))
            logging.warning("%s", exc)
        except AmbiguousSymbolError as exc:
            entry.update(status="ambiguous", detail=str(exc))
            logging.warning("%s", exc)
        else:
            result = compare_symbol(symbol, image, candidate, decoder)
            if isinstance(result, Identical):
                entry["status"] = "identical"
            else:
                entry.update(status="mismatch", index=result.at_index,
                             detail=describe(result, symbol))
        if entry["status"] != "identical":
            failed += 1
            print(f"{symbol.name}: {entry['detail']}")
        entries.append(entry)

    if args.report:
        out_path = Path(args.report)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        report = {"object": str(args.object), "checked": len(entries),
                  "failed": failed, "functions": entries}
        out_path.write_text(json.dumps(report, indent=2))
        logging.info("Report written to %s", out_path)

    if failed:
        raise SystemExit(f"{failed} of {len(entries)} functions differ")
    print(f"identical ({len(entries)} functions)")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Compare rebuilt functions against a reference binary")
    ap.add_argument("image", help="Reference image (raw memory dump, or ELF with --elf)")
    ap.add_argument("symbols", help="CSV table of name,start,end")
    ap.add_argument("object", help="Rebuilt object file to dump")
    ap.add_argument("symbol", nargs="?", help="Mangled name of the function to check")
    ap.add_argument("--all", action="store_true", help="Check every function in the table")
    ap.add_argument("--base", type=lambda x: int(x, 0), default=None,
                    help=f"Image load address (default 0x{DEFAULT_BASE_ADDRESS:X})")
    ap.add_argument("--elf", action="store_true", help="Read the image as an ELF executable")
    ap.add_argument("--config", help="JSON settings file (default funcmatch.json)")
    ap.add_argument("--dump-tool", help=f"Dump tool executable (default {DEFAULT_TOOL})")
    ap.add_argument("--paired-singles", dest="paired_singles", action="store_true", default=None,
                    help="Decode Gekko/Broadway paired-single instructions (default)")
    ap.add_argument("--no-paired-singles", dest="paired_singles", action="store_false",
                    help="Decode plain PowerPC without paired singles")
    ap.add_argument("--list", action="store_true", help="Print both listings side by side")
    ap.add_argument("--report", help="Write a JSON report (with --all)")
    ap.add_argument("-v", "--verbose", action="store_true")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def main(argv=None) -> None:
    ap = build_parser()
    args = ap.parse_args(argv)
    if bool(args.symbol) == args.all:
        ap.error("give either a symbol name or --all")
    if args.list and args.all:
        ap.error("--list works with a single symbol, not --all")

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="[%(levelname)s] %(message)s")

    try:
        cfg = load_config(args.config)
        base = args.base
        if base is None:
            try:
                base = address_setting(cfg.get("base_address"))
            except ValueError as exc:
                raise SystemExit(f"error: bad base_address in config: {exc}")
        if base is None:
            base = DEFAULT_BASE_ADDRESS
        tool = args.dump_tool or cfg.get("dump_tool", DEFAULT_TOOL)
        flags = cfg.get("dump_flags", DEFAULT_FLAGS)
        paired = args.paired_singles if args.paired_singles is not None \
            else bool(cfg.get("paired_singles", True))

        symbols = load_symbols(args.symbols)
        image = load_image(args.image, base, elf=args.elf)
        functions = scan_dump(run_dump_tool(args.object, tool, flags))
        decoder = Decoder(paired_singles=paired)

        if args.all:
            check_all(args, symbols, image, functions, decoder)
        else:
            check_one(args, symbols, image, functions, decoder)
    except FuncmatchError as exc:
        raise SystemExit(f"error: {exc}")


if __name__ == "__main__":
    main()
