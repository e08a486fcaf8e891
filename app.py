# Storefront checkout service - WSGI entry point.
# Run locally with:  flask --app app run
# Seed demo data:    flask --app app seed-catalog

import os

from storefront import create_app

app = create_app(os.environ.get('FLASK_CONFIG'))

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), debug=app.config.get('DEBUG', False))
