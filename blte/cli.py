from __future__ import annotations

import os
import sys
import argparse
import logging
import tempfile
import json as _json

from pathlib import Path
from typing import List, Dict, Any, Optional

from blte.block import Block
from blte.constants import TABLE_FORMATS, TABLE_FORMAT_EXTENDED, TAG_PLAIN, TAG_ZLIB
from blte.container import decode, encode, read_header
from blte.errors import BlteError
from blte.hashutil import md5_16, span_hash


MANIFEST_NAME = "manifest.json"


def _table_format(text: str) -> int:
    """argparse type for table format selectors (accepts 15, 0x0f, 16, 0x10)."""
    try:
        value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid table format: {text!r}")
    if value not in TABLE_FORMATS:
        raise argparse.ArgumentTypeError("table format must be 0x0F or 0x10")
    return value


def _atomic_write(path: str, data: bytes) -> int:
    """Write ``data`` to ``path`` through a temp file in the same directory."""
    dir_name = os.path.dirname(os.path.abspath(path)) or "."
    fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix=".blte.tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return len(data)


def _read_container(path: str, *, strict: bool = False):
    with open(path, "rb") as fh:
        data = fh.read()
    return data, decode(data, strict=strict)


def _block_summary(index: int, block: Block) -> Dict[str, Any]:
    return {
        "index": index,
        "mode": block.mode.name,
        "tag": block.encoding_tag,
        "logical_size": block.logical_size,
        "raw_size": len(block.raw_data),
        "hash": block.hash.hex(),
        "uncompressed_hash": block.uncompressed_hash.hex(),
    }


def cmd_info(path: str, *, as_json: bool = False, strict: bool = False) -> bool:
    """Show header fields and one line per block.

    Args:
        path: Container file to inspect.
        as_json: Emit a JSON document instead of text.
        strict: Reject header size mismatches and trailing bytes.
    """
    data, (blocks, fmt) = _read_container(path, strict=strict)
    header = read_header(data)
    if as_json:
        doc = {
            "path": path,
            "size": len(data),
            "header_size": header.header_size,
            "table_format": fmt,
            "block_count": header.block_count,
            "blocks": [_block_summary(i, b) for i, b in enumerate(blocks)],
        }
        print(_json.dumps(doc, indent=2))
        return True
    print(f"Container: {path}")
    print(f"  Size: {len(data)}")
    print(f"  Header size: {header.header_size}")
    print(f"  Table format: 0x{fmt:02X}")
    print(f"  Blocks: {header.block_count}")
    for i, b in enumerate(blocks):
        tag = chr(b.encoding_tag) if 0x20 <= b.encoding_tag < 0x7F else f"\\x{b.encoding_tag:02x}"
        line = f"  [{i}] {b.mode.name:<9} tag={tag} logical={b.logical_size} raw={len(b.raw_data)} hash={b.hash.hex()}"
        if fmt == TABLE_FORMAT_EXTENDED:
            line += f" uhash={b.uncompressed_hash.hex()}"
        print(line)
    return True


def cmd_unpack(path: str, *, outdir: str = ".", strict: bool = False, quiet: bool = False) -> int:
    """Write each block payload to ``outdir`` along with a manifest.

    Returns the number of blocks written.
    """
    _, (blocks, fmt) = _read_container(path, strict=strict)
    out = Path(outdir)
    out.mkdir(parents=True, exist_ok=True)
    entries = []
    for i, b in enumerate(blocks):
        name = f"block_{i:06d}.bin"
        (out / name).write_bytes(b.raw_data)
        entries.append(
            {
                "file": name,
                "tag": b.encoding_tag,
                "logical_size": b.logical_size,
                "hash": b.hash.hex(),
                "uncompressed_hash": b.uncompressed_hash.hex(),
            }
        )
        if not quiet:
            print(f"{name}: {b.mode.name} {len(b.raw_data)} bytes")
    manifest = {"table_format": fmt, "blocks": entries}
    (out / MANIFEST_NAME).write_text(_json.dumps(manifest, indent=2), encoding="utf-8")
    print(f"Unpacked {len(blocks)} block(s) to {out}")
    return len(blocks)


def _blocks_from_manifest(manifest_path: str) -> tuple[List[Block], int]:
    base = Path(manifest_path).resolve().parent
    doc = _json.loads(Path(manifest_path).read_text(encoding="utf-8"))
    try:
        fmt = int(doc["table_format"])
        blocks = [
            Block(
                (base / e["file"]).read_bytes(),
                encoding_tag=int(e["tag"]),
                logical_size=int(e["logical_size"]),
                hash=bytes.fromhex(e["hash"]),
                uncompressed_hash=bytes.fromhex(e["uncompressed_hash"]),
            )
            for e in doc["blocks"]
        ]
    except (KeyError, TypeError) as e:
        raise ValueError(f"malformed manifest {manifest_path}: {e}")
    return blocks, fmt


def _blocks_from_files(inputs: List[str]) -> List[Block]:
    blocks = []
    for p in inputs:
        if os.path.isdir(p):
            raise ValueError(f"{p} is a directory; pass files")
        payload = Path(p).read_bytes()
        blocks.append(
            Block(
                payload,
                encoding_tag=TAG_PLAIN,
                logical_size=len(payload),
                hash=span_hash(TAG_PLAIN, payload),
                uncompressed_hash=md5_16(payload),
            )
        )
    return blocks


def cmd_pack(
    output: str,
    inputs: Optional[List[str]] = None,
    *,
    manifest: Optional[str] = None,
    table_format: Optional[int] = None,
) -> int:
    """Build a container from a manifest or from plain input files.

    Args:
        output: Destination container path.
        inputs: Files stored one per block with the plain tag.
        manifest: Manifest written by ``unpack``; rebuilds that container.
        table_format: Row layout; defaults to the manifest's, else 0x10.

    Returns the number of bytes written.
    """
    if manifest and inputs:
        raise ValueError("pass either --manifest or input files, not both")
    if manifest:
        blocks, fmt = _blocks_from_manifest(manifest)
    elif inputs:
        blocks, fmt = _blocks_from_files(inputs), TABLE_FORMAT_EXTENDED
    else:
        raise ValueError("pack needs --manifest or at least one input file")
    if table_format is not None:
        fmt = table_format
    written = _atomic_write(output, encode(blocks, fmt))
    print(f"Wrote {output}: {len(blocks)} block(s), table format 0x{fmt:02X}, {written} bytes")
    return written


def cmd_reformat(path: str, output: str, *, table_format: int, strict: bool = False) -> int:
    """Re-encode a container with another table row layout."""
    _, (blocks, fmt) = _read_container(path, strict=strict)
    written = _atomic_write(output, encode(blocks, table_format))
    print(f"Reformatted 0x{fmt:02X} -> 0x{table_format:02X}: {written} bytes")
    return written


def cmd_demo() -> bool:
    """Round-trip two small blocks through encode/decode and print them."""
    blocks = [
        Block(b"Test1", encoding_tag=TAG_PLAIN, logical_size=5, hash=b"1" * 16, uncompressed_hash=b"2" * 16),
        Block(b"Test2", encoding_tag=TAG_ZLIB, logical_size=5, hash=b"3" * 16, uncompressed_hash=b"4" * 16),
    ]
    decoded, _ = decode(encode(blocks, TABLE_FORMAT_EXTENDED))
    for b in decoded:
        print(b)
    return decoded == blocks


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(prog="blte", description="BLTE container tool")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_info = sub.add_parser("info", help="Show container header and blocks")
    ap_info.add_argument("container", help="Container path")
    ap_info.add_argument("--json", action="store_true", help="Emit JSON")
    ap_info.add_argument("--strict", action="store_true", help="Reject header size mismatches and trailing bytes")

    ap_unpack = sub.add_parser("unpack", help="Write block payloads and a manifest to a directory")
    ap_unpack.add_argument("container", help="Container path")
    ap_unpack.add_argument("--outdir", default=".", help="Output directory")
    ap_unpack.add_argument("--strict", action="store_true", help="Reject header size mismatches and trailing bytes")
    ap_unpack.add_argument("--quiet", action="store_true", help="limit outputs to summaries only")

    ap_pack = sub.add_parser("pack", help="Build a container from a manifest or plain files")
    ap_pack.add_argument("output", help="Output container path")
    ap_pack.add_argument("inputs", nargs="*", help="Files to store as plain blocks")
    ap_pack.add_argument("--manifest", help="Manifest written by 'unpack'")
    ap_pack.add_argument("--format", dest="table_format", type=_table_format, help="Table format (0x0F or 0x10)")

    ap_reformat = sub.add_parser("reformat", help="Re-encode with another table format")
    ap_reformat.add_argument("container", help="Container path")
    ap_reformat.add_argument("output", help="Output container path")
    ap_reformat.add_argument("--format", dest="table_format", type=_table_format, required=True, help="Table format (0x0F or 0x10)")
    ap_reformat.add_argument("--strict", action="store_true", help="Reject header size mismatches and trailing bytes")

    sub.add_parser("demo", help="Encode and decode two sample blocks")

    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.cmd == "info":
            cmd_info(args.container, as_json=args.json, strict=args.strict)
        elif args.cmd == "unpack":
            cmd_unpack(args.container, outdir=args.outdir, strict=args.strict, quiet=args.quiet)
        elif args.cmd == "pack":
            cmd_pack(args.output, args.inputs, manifest=args.manifest, table_format=args.table_format)
        elif args.cmd == "reformat":
            cmd_reformat(args.container, args.output, table_format=args.table_format, strict=args.strict)
        elif args.cmd == "demo":
            sys.exit(0 if cmd_demo() else 1)
        else:
            raise RuntimeError("Unknown command")
    except (BlteError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
