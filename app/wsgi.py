from app.quill import create_app

app = create_app()
