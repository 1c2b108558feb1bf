#!/usr/bin/env python3
"""
TripBid Backend - Main application entry point
"""
from tripbid import create_app, db
from tripbid.events import socketio
import os

app = create_app()

with app.app_context():
    db.create_all()

if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('DEBUG', 'True').lower() == 'true'

    socketio.run(
        app,
        host='0.0.0.0',
        port=port,
        debug=debug,
        allow_unsafe_werkzeug=debug,
    )
