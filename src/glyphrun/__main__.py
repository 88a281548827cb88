from glyphrun.cli import app

app()
