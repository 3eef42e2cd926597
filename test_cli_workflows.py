from __future__ import annotations

import os
import json
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from blte.container import decode, encode
from blte.block import Block
from blte.constants import TABLE_FORMAT_EXTENDED, TABLE_FORMAT_STANDARD
from blte.errors import FormatError
from blte.hashutil import md5_16, span_hash


REPO_ROOT = Path(__file__).resolve().parent


def _sample_container(path: Path, fmt: int = TABLE_FORMAT_EXTENDED) -> list:
    blocks = [
        Block(b"hello world\n" * 20, encoding_tag="N", logical_size=240, hash=b"\x11" * 16, uncompressed_hash=b"\x22" * 16),
        Block(os.urandom(300), encoding_tag="Z", logical_size=4096, hash=b"\x33" * 16, uncompressed_hash=b"\x44" * 16),
        Block(b"", encoding_tag="E", logical_size=0, hash=b"\x55" * 16, uncompressed_hash=b"\x66" * 16),
    ]
    path.write_bytes(encode(blocks, fmt))
    return blocks


class CLIIntegrationTests(unittest.TestCase):
    def _run(self, cmd, *, expect: int | None = 0, cwd: Path | None = None):
        env = os.environ.copy()
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(REPO_ROOT) if not existing else f"{REPO_ROOT}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def run_cli(self, args, **kw):
        return self._run([sys.executable, "-m", "blte.cli"] + list(args), **kw)

    def run_corrupt(self, args, **kw):
        return self._run([sys.executable, str(REPO_ROOT / "scripts" / "corrupt.py")] + list(args), **kw)

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)

    def test_info_text_and_json(self):
        path = self.root / "a.blte"
        blocks = _sample_container(path)
        proc = self.run_cli(["info", str(path)])
        self.assertIn("Table format: 0x10", proc.stdout)
        self.assertIn("Blocks: 3", proc.stdout)
        self.assertIn("ENCRYPTED", proc.stdout)

        proc = self.run_cli(["info", str(path), "--json"])
        doc = json.loads(proc.stdout)
        self.assertEqual(doc["block_count"], 3)
        self.assertEqual(doc["header_size"], 12 + 3 * 40)
        self.assertEqual(doc["table_format"], 0x10)
        self.assertEqual([b["mode"] for b in doc["blocks"]], ["PLAIN", "ZLIB", "ENCRYPTED"])
        self.assertEqual(doc["blocks"][1]["raw_size"], len(blocks[1].raw_data))

    def test_unpack_then_pack_manifest_is_identical(self):
        path = self.root / "a.blte"
        _sample_container(path)
        outdir = self.root / "out"
        self.run_cli(["unpack", str(path), "--outdir", str(outdir), "--quiet"])
        self.assertTrue((outdir / "manifest.json").exists())
        self.assertEqual((outdir / "block_000000.bin").read_bytes(), b"hello world\n" * 20)

        rebuilt = self.root / "b.blte"
        self.run_cli(["pack", str(rebuilt), "--manifest", str(outdir / "manifest.json")])
        self.assertEqual(rebuilt.read_bytes(), path.read_bytes())

    def test_pack_plain_files(self):
        f1 = self.root / "one.txt"
        f2 = self.root / "two.bin"
        f1.write_bytes(b"first file")
        f2.write_bytes(os.urandom(128))
        out = self.root / "files.blte"
        self.run_cli(["pack", str(out), str(f1), str(f2), "--format", "0x0f"])
        blocks, fmt = decode(out.read_bytes())
        self.assertEqual(fmt, TABLE_FORMAT_STANDARD)
        self.assertEqual([b.raw_data for b in blocks], [f1.read_bytes(), f2.read_bytes()])
        self.assertEqual(blocks[0].logical_size, len(b"first file"))
        self.assertEqual(blocks[0].hash, span_hash(ord("N"), b"first file"))

        out16 = self.root / "files16.blte"
        self.run_cli(["pack", str(out16), str(f1)])
        (block,), fmt = decode(out16.read_bytes())
        self.assertEqual(fmt, TABLE_FORMAT_EXTENDED)
        self.assertEqual(block.uncompressed_hash, md5_16(b"first file"))

    def test_pack_requires_input(self):
        proc = self.run_cli(["pack", str(self.root / "x.blte")], expect=2)
        self.assertIn("Error:", proc.stderr)

    def test_pack_rejects_manifest_with_inputs(self):
        f1 = self.root / "one.txt"
        f1.write_bytes(b"first file")
        manifest = self.root / "manifest.json"
        manifest.write_text("{}", encoding="utf-8")
        out = self.root / "x.blte"
        proc = self.run_cli(["pack", str(out), str(f1), "--manifest", str(manifest)], expect=2)
        self.assertIn("not both", proc.stderr)
        self.assertFalse(out.exists())

    def test_bad_format_argument(self):
        path = self.root / "a.blte"
        _sample_container(path)
        self.run_cli(["reformat", str(path), str(self.root / "b.blte"), "--format", "0x11"], expect=2)

    def test_reformat(self):
        path = self.root / "a.blte"
        blocks = _sample_container(path)
        std = self.root / "std.blte"
        self.run_cli(["reformat", str(path), str(std), "--format", "15"])
        decoded, fmt = decode(std.read_bytes())
        self.assertEqual(fmt, TABLE_FORMAT_STANDARD)
        self.assertEqual([b.raw_data for b in decoded], [b.raw_data for b in blocks])
        self.assertEqual([b.hash for b in decoded], [b.hash for b in blocks])
        self.assertEqual(len(std.read_bytes()), len(path.read_bytes()) - 3 * 16)

    def test_demo(self):
        proc = self.run_cli(["demo"])
        lines = proc.stdout.strip().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertIn("mode=PLAIN", lines[0])
        self.assertIn("mode=ZLIB", lines[1])
        self.assertIn("31" * 16, lines[0])

    def test_missing_file(self):
        proc = self.run_cli(["info", str(self.root / "nope.blte")], expect=2)
        self.assertIn("Error:", proc.stderr)

    def test_truncated_container_rejected(self):
        path = self.root / "a.blte"
        _sample_container(path)
        self.run_corrupt(["truncate", str(path), "--bytes", "3"])
        proc = self.run_cli(["info", str(path)], expect=2)
        self.assertIn("truncated", proc.stderr)

    def test_corrupt_block_payload_still_decodes(self):
        path = self.root / "a.blte"
        blocks = _sample_container(path)
        self.run_corrupt(["block", str(path), "--index", "1", "--within", "1"])
        decoded, _ = decode(path.read_bytes())
        self.assertNotEqual(decoded[1].raw_data, blocks[1].raw_data)
        self.assertEqual(decoded[1].raw_data[0], blocks[1].raw_data[0] ^ 0xFF)
        self.assertEqual(decoded[0], blocks[0])

    def test_random_flips_are_seeded_and_detected(self):
        first = self.root / "a.blte"
        second = self.root / "b.blte"
        blocks = _sample_container(first)
        second.write_bytes(first.read_bytes())
        original = first.read_bytes()
        proc = self.run_corrupt(["random", str(first), "--count", "1", "--seed", "7"])
        self.assertIn("Flipped 1 byte(s)", proc.stdout)
        self.run_corrupt(["random", str(second), "--count", "1", "--seed", "7"])
        damaged = first.read_bytes()
        self.assertEqual(damaged, second.read_bytes())
        self.assertNotEqual(damaged, original)
        try:
            decoded, _ = decode(damaged)
        except FormatError:
            return
        self.assertNotEqual(decoded, blocks)

    def test_corrupt_magic_rejected(self):
        path = self.root / "a.blte"
        _sample_container(path)
        self.run_corrupt(["by-offset", str(path), "--offset", "0"])
        proc = self.run_cli(["info", str(path)], expect=2)
        self.assertIn("magic", proc.stderr)

    def test_strict_flag(self):
        path = self.root / "a.blte"
        _sample_container(path)
        with open(path, "ab") as fh:
            fh.write(b"\x00")
        self.run_cli(["info", str(path)])
        proc = self.run_cli(["info", str(path), "--strict"], expect=2)
        self.assertIn("trailing", proc.stderr)


if __name__ == "__main__":
    unittest.main()
