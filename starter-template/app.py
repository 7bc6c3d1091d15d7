"""
PortalDesk Starter Template
===========================

A ready-to-run Flask application with the banner engine enabled.

Run with:
    python app.py

Visit:
    http://localhost:5000/api/banners/slots               - Slot list
    http://localhost:5000/api/banners/slots/hero/current  - Banner for the hero slot
    http://localhost:5000/admin/banners/api/queue         - Queue (admin session required)
"""

from flask import Flask, jsonify
from portaldesk import PortalDesk

from config import Config

# Create Flask app
app = Flask(__name__)
app.config.from_object(Config)

# Initialize PortalDesk - this registers the banner and columnist modules
portaldesk = PortalDesk(app)


# =============================================================================
# Your Routes - Add your own routes below
# =============================================================================

@app.route('/health')
def health():
    return jsonify({'status': 'ok', 'modules': portaldesk.get_registered_modules()})


# =============================================================================
# Run the app
# =============================================================================

if __name__ == '__main__':
    print("\n" + "=" * 60)
    print("PortalDesk Starter Template")
    print("=" * 60)
    print("Slots:           http://localhost:5000/api/banners/slots")
    print("Hero banner:     http://localhost:5000/api/banners/slots/hero/current")
    print("=" * 60 + "\n")

    app.run(host='0.0.0.0', port=5000, debug=True)
