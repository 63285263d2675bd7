from app.batchflow import create_app

app = create_app()
