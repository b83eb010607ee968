from leadgate.cli import app

app()
