import os

os.environ.setdefault("USE_MOCK_DB", "true")
os.environ.setdefault("ESCALATION_ENABLED", "false")

from fastapi.testclient import TestClient
from app.main import app

with TestClient(app) as client:
    print('ROOT:')
    print(client.get('/').json())

    print('\nHEALTH:')
    print(client.get('/health').json())

    print('\nDB HEALTH:')
    resp = client.get('/health/db')
    print(resp.status_code, resp.json())

    print('\nESCALATION HEALTH:')
    resp = client.get('/health/escalation')
    print(resp.status_code, resp.json())
