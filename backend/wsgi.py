import os
import sys

from flask import jsonify

# Project root holds app.py, routing.py and the lakbayrouting package
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app

app = create_app()


@app.route('/')
def index():
    return jsonify({'message': 'Lakbay backend is running!', 'routing': '/routing'})


if __name__ == "__main__":
    app.run(host='0.0.0.0', port=8080)
