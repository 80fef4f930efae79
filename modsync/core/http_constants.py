"""Constantes HTTP pour éviter les valeurs magiques dans le code.

Ce module définit les codes de statut HTTP utilisés par l'API et par le client du service de
documents.
"""

# Codes de statut HTTP courants
HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_UNPROCESSABLE_ENTITY = 422
HTTP_BAD_GATEWAY = 502
HTTP_SERVICE_UNAVAILABLE = 503

# Seuil à partir duquel une réponse est une erreur
HTTP_ERROR_MIN = 400

# Taille maximale du corps d'erreur conservé dans le contexte d'un échec
ERROR_BODY_MAX_CHARS = 2000
