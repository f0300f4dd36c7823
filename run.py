import logging
import os

from contentguard import create_app

# Configure logging to reduce noise
logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
logging.getLogger('werkzeug').setLevel(
    logging.WARNING)  # Reduce Flask dev server logs
logging.getLogger('httpx').setLevel(logging.WARNING)  # One line per provider call otherwise

app = create_app(os.getenv('FLASK_CONFIG') or 'default')


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', '5000')))
