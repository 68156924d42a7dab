from bpfbuild.cli import run

run()
