from taxorefine.cli.main import app

app(prog_name="taxorefine")
