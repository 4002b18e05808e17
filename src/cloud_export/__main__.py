from cloud_export.cli import app

app(prog_name="cloud-export")
