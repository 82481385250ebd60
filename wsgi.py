from tripseller import create_app

app = create_app()
