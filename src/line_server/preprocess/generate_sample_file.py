"""
Write a sample newline-delimited file ("Line 0", "Line 1", ...) for local
runs and benchmarks of the line server.
"""

import argparse
from pathlib import Path

from line_server.config import DATA_DIR


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a sample line file.")
    parser.add_argument("count", type=int, help="Number of lines to write.")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output path (defaults to data/sample_<count>.dat).",
    )
    return parser.parse_args(argv)


def generate_sample_file(count: int, output: Path) -> Path:
    if count < 0:
        raise ValueError("count must be non-negative")
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8", newline="\n") as f:
        for idx in range(count):
            f.write(f"Line {idx}\n")
    return output


def main(argv=None) -> None:
    args = parse_args(argv)
    output = args.output or DATA_DIR / f"sample_{args.count}.dat"
    generate_sample_file(args.count, output)
    print(f"File {output} created")


if __name__ == "__main__":
    main()
