from app.custbook import create_app

app = create_app()
