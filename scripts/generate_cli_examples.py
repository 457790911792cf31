from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_ARGS = ["--width", "200", "--height", "150"]


@dataclass
class Example:
    name: str
    args: list[str]
    outputs: list[Path] = field(default_factory=list)

    @property
    def root(self) -> Path:
        return EXAMPLES_ROOT / self.name

    def full_args(self) -> list[str]:
        return [sys.executable, "explore.py", *BASE_ARGS, *self.args]


def image_example(name: str, filename: str, *args: str) -> Example:
    output = EXAMPLES_ROOT / name / filename
    return Example(name, [*args, "--output", str(output)], [output])


EXAMPLES: list[Example] = [
    image_example("defaults", "seahorse.png"),
    image_example("zoom", "wide.png", "--zoom", "60", "--x-center", "-0.75", "--y-center", "0"),
    image_example("max-iterations", "detailed.png", "--max-iterations", "400"),
    image_example("bailout", "low-bailout.png", "--bailout", "4"),
    image_example("colormap", "inferno.png", "--colormap", "inferno"),
    image_example("gradient-scale", "compressed.png", "--gradient-scale", "40"),
    image_example("commands", "panned.png", "--commands", "in,in,in,left,left,up"),
    image_example("blur-box", "box.png", "--blur", "box", "--blur-radius", "2"),
    image_example("blur-motion", "motion.png", "--blur", "motion", "--blur-radius", "6"),
    image_example("blur-double", "ghost.png", "--blur", "double:4", "--blur-radius", "4"),
    image_example("pattern", "pattern.png", "--pattern"),
    image_example("format", "custom.webp", "--format", "webp"),
    Example(
        "gif",
        ["--commands", "in,in,in,in,in,out,right,right,down", "--gif", str(EXAMPLES_ROOT / "gif" / "tour.gif"),
         "--output", str(EXAMPLES_ROOT / "gif" / "last.png")],
        [EXAMPLES_ROOT / "gif" / "tour.gif", EXAMPLES_ROOT / "gif" / "last.png"],
    ),
    Example(
        "frame-dir",
        ["--commands", "in,in", "--frame-dir", str(EXAMPLES_ROOT / "frame-dir" / "frames"),
         "--output", str(EXAMPLES_ROOT / "frame-dir" / "last.png")],
        [EXAMPLES_ROOT / "frame-dir" / "frames" / f"frame{i:03d}.png" for i in range(3)],
    ),
]


def main() -> None:
    EXAMPLES_ROOT.mkdir(parents=True, exist_ok=True)
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        if example.root.exists():
            shutil.rmtree(example.root)
        example.root.mkdir(parents=True)
        subprocess.run(example.full_args(), check=True)
        missing = [path for path in example.outputs if not path.is_file()]
        if missing:
            raise RuntimeError(f"Example {example.name} did not create {', '.join(map(str, missing))}")
    print("\nAll CLI examples generated successfully.")


if __name__ == "__main__":
    main()
