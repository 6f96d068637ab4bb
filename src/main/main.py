import sys

from predictiveworks import workflow

if len(sys.argv) != 3:
    sys.exit("usage: main.py <config_path> <run_type>")

workflow.run(config_path=sys.argv[1], run_type=sys.argv[2])
