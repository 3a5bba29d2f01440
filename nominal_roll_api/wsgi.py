from nominal_roll_api import create_app

app = create_app()
