# run.py
from shelter import create_app, db
from flask.cli import with_appcontext
import logging

app = create_app()
logging.basicConfig(level=app.config.get('LOG_LEVEL', 'INFO'),
                    format='%(asctime)s %(levelname)s %(name)s: %(message)s')

@app.cli.command('init-db')
@with_appcontext
def init_db():
    db.create_all()
    logging.getLogger(__name__).info('Database initialized.')

if __name__ == '__main__':
    # Socket.IO runs inside the Flask WSGI app in threading mode
    app.run(debug=app.config.get('DEBUG', False), host='0.0.0.0', port=5000, threaded=True)
