"""
WSGI entry point — `gunicorn wsgi:app`.

Running this file directly starts the Flask dev server on $PORT (default 8080).
"""
import os

from app import create_app

app = create_app()

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', 8080)), debug=os.getenv('FLASK_DEBUG') == '1')
