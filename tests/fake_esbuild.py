"""Stand-in for the esbuild CLI used by the test suite.

Concatenates alias targets and staged entry points into the outfile and
records the argv it was called with next to it.
"""

import json
import sys
from pathlib import Path


def main(argv):
    entries = [arg for arg in argv if not arg.startswith("--")]
    outfile = None
    aliases = {}
    sourcemap = False
    for arg in argv:
        if arg.startswith("--outfile="):
            outfile = Path(arg.split("=", 1)[1])
        elif arg.startswith("--alias:"):
            spec, target = arg[len("--alias:"):].split("=", 1)
            aliases[spec] = target
        elif arg == "--sourcemap":
            sourcemap = True

    chunks = []
    for spec, target in aliases.items():
        chunks.append(f"// alias {spec}\n" + Path(target).read_text(encoding="utf-8"))
    for entry in entries:
        text = Path(entry).read_text(encoding="utf-8")
        if "FAIL_BUILD" in text:
            print(f"X [ERROR] forced failure in {entry}", file=sys.stderr)
            return 1
        chunks.append(f"// entry {entry}\n" + text)

    outfile.parent.mkdir(parents=True, exist_ok=True)
    outfile.write_text("\n".join(chunks), encoding="utf-8")
    if sourcemap:
        Path(f"{outfile}.map").write_text('{"version":3}', encoding="utf-8")
    Path(f"{outfile}.argv.json").write_text(json.dumps(argv), encoding="utf-8")
    print(f"  {outfile}  done", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
