"""Stand-in for ``exiftool -stay_open True -@ -`` used by the test suite.

Each queried file holds its own metadata as a JSON object. A ``_fake`` key
switches behaviour: ``hang`` never answers, ``crash`` exits mid-request,
``garbage`` answers with a non-JSON payload, ``stderr`` also writes its
value to stderr.
"""

import json
import os
import sys
import time


def describe(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as exc:
        sys.stderr.write(f"Error: File not found - {path} ({exc.strerror})\n")
        sys.stderr.flush()
        return None

    try:
        tags = json.loads(content) if content.strip() else {}
    except ValueError:
        tags = {}
    if not isinstance(tags, dict):
        tags = {}
    tags.setdefault("FileSize", f"{os.path.getsize(path)} bytes")
    return tags


def answer(args):
    paths = [arg for arg in args if not arg.startswith("-")]
    records = []
    for path in paths:
        tags = describe(path)
        if tags is None:
            continue
        mode = tags.pop("_fake", None)
        if mode == "hang":
            while True:
                time.sleep(1)
        if mode == "crash":
            sys.exit(3)
        if mode == "garbage":
            sys.stdout.write("this is not json\n")
            continue
        if mode == "stderr":
            sys.stderr.write(f"Warning: {tags.pop('_message', 'minor problem')} - {path}\n")
            sys.stderr.flush()
        records.append({"SourceFile": path, **tags})
    if records:
        sys.stdout.write(json.dumps(records, indent=2) + "\n")
    sys.stdout.write("{ready}\n")
    sys.stdout.flush()


def main(argv):
    if argv[:4] != ["-stay_open", "True", "-@", "-"]:
        sys.stderr.write(f"unsupported arguments: {argv}\n")
        return 2

    args = []
    for raw in sys.stdin:
        line = raw.rstrip("\n")
        if line == "-execute":
            answer(args)
            args = []
        elif args[-1:] == ["-stay_open"] and line == "False":
            return 0
        else:
            args.append(line)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
