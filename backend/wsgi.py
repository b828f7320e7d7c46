from bizops import create_app

app = create_app()
