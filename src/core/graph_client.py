"""
MS Graph client construction.
"""

from azure.identity import ClientSecretCredential
from msgraph import GraphServiceClient

from core.config import GRAPH_APP_ID, GRAPH_CLIENT_SECRET, GRAPH_TENANT_ID


def create_graph_client(
    tenant_id: str = GRAPH_TENANT_ID,
    client_id: str = GRAPH_APP_ID,
    client_secret: str = GRAPH_CLIENT_SECRET,
) -> GraphServiceClient:
    """Build a Graph client for app-only (client credentials) access."""
    credential = ClientSecretCredential(
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
    )
    return GraphServiceClient(credentials=credential)
