from __future__ import annotations

import argparse
import os
import random
import sys
from typing import Optional

from blte.container import read_header
from blte.errors import BlteError
from blte.header import parse_row


def _flip_byte(path: str, offset: int, xor_val: int = 0xFF) -> None:
    if offset < 0:
        raise ValueError("Offset must be non-negative")
    with open(path, "r+b") as f:
        f.seek(offset)
        b = f.read(1)
        if not b:
            raise ValueError("Offset beyond end of file")
        f.seek(offset)
        f.write(bytes([b[0] ^ (xor_val & 0xFF)]))
        f.flush()
        os.fsync(f.fileno())


def cmd_by_offset(args: argparse.Namespace) -> None:
    _flip_byte(args.container, args.offset, xor_val=args.xor)
    print(f"Flipped 1 byte at offset {args.offset}")


def cmd_block(args: argparse.Namespace) -> None:
    with open(args.container, "rb") as f:
        data = f.read()
    header = read_header(data)
    idx = args.index
    if idx < 0 or idx >= header.block_count:
        raise ValueError(f"Block index out of range (0..{header.block_count - 1})")
    start = header.header_size
    for i in range(idx):
        start += parse_row(data, i, header.table_format).raw_size
    raw_size = parse_row(data, idx, header.table_format).raw_size
    if args.within < 0 or args.within >= raw_size:
        raise ValueError(f"--within must be within block span (0..{raw_size - 1}); 0 is the tag byte")
    off = start + args.within
    _flip_byte(args.container, off, xor_val=args.xor)
    print(f"Flipped 1 byte in block {idx} at offset {off}")


def cmd_truncate(args: argparse.Namespace) -> None:
    size = os.path.getsize(args.container)
    if args.bytes < 1 or args.bytes > size:
        raise ValueError(f"--bytes must be within 1..{size}")
    with open(args.container, "r+b") as f:
        f.truncate(size - args.bytes)
    print(f"Truncated {args.bytes} byte(s); new size {size - args.bytes}")


def cmd_random(args: argparse.Namespace) -> None:
    size = os.path.getsize(args.container)
    if size == 0:
        raise ValueError("Container is empty")
    rng = random.Random(args.seed)
    offsets = [rng.randrange(0, size) for _ in range(args.count)]
    for off in offsets:
        _flip_byte(args.container, off, xor_val=args.xor)
    print(f"Flipped {len(offsets)} byte(s) at offsets: {', '.join(str(o) for o in offsets)}")


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="blte.corrupt", description="Corrupt BLTE containers for testing")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_off = sub.add_parser("by-offset", help="Flip one byte at an absolute offset")
    p_off.add_argument("container", help="Path to container")
    p_off.add_argument("--offset", type=int, required=True, help="Absolute byte offset")
    p_off.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_off.set_defaults(func=cmd_by_offset)

    p_blk = sub.add_parser("block", help="Flip a byte within a block's data span")
    p_blk.add_argument("container", help="Path to container")
    p_blk.add_argument("--index", type=int, required=True, help="Block index (0-based)")
    p_blk.add_argument("--within", type=int, default=1, help="Byte offset within the span (default 1, first payload byte)")
    p_blk.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_blk.set_defaults(func=cmd_block)

    p_trunc = sub.add_parser("truncate", help="Drop trailing bytes")
    p_trunc.add_argument("container", help="Path to container")
    p_trunc.add_argument("--bytes", type=int, default=1, help="Number of trailing bytes to drop (default 1)")
    p_trunc.set_defaults(func=cmd_truncate)

    p_rand = sub.add_parser("random", help="Flip N random bytes anywhere in the container")
    p_rand.add_argument("container", help="Path to container")
    p_rand.add_argument("--count", type=int, default=1, help="Number of random byte flips (default 1)")
    p_rand.add_argument("--seed", type=int, default=None, help="PRNG seed for reproducibility")
    p_rand.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_rand.set_defaults(func=cmd_random)

    args = ap.parse_args(argv)
    try:
        args.func(args)
    except (BlteError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
