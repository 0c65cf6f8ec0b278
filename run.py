# run.py
"""
Point d'entrée pour l'exécution de l'application Flask.

Ce script importe la factory `create_app` depuis le paquet `evaluation_rh`
et lance le serveur de développement intégré de Flask.
"""

import os

from evaluation_rh import create_app

# Crée une instance de l'application en appelant la factory.
app = create_app()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))

    # Le mode debug n'est activé que si FLASK_DEBUG vaut explicitement "true".
    debug_mode = os.environ.get("FLASK_DEBUG", "False").lower() == "true"

    app.run(host="0.0.0.0", port=port, debug=debug_mode)
