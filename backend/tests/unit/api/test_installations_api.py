"""
Unit Tests for Installation API Endpoints
"""
import pytest
from httpx import AsyncClient

from conftest import make_settings, random_installation
from solar_tracker.main import create_app
from solar_tracker.modules.auth.identity import UserIdentity


def headers_for(app, identity: UserIdentity):
    token = app.state.auth_gate.issue_token(identity)
    return {'Authorization': f'Bearer {token}'}


class TestAuthRequired:
    """Every installation route sits behind the bearer token"""

    @pytest.mark.asyncio
    async def test_missing_header(self, client: AsyncClient):
        response = await client.get('/api/installations')

        assert response.status_code == 401
        assert response.json() == {'error': 'Authorization header missing'}

    @pytest.mark.asyncio
    @pytest.mark.parametrize('header', ['Basic abc', 'Bearer', 'token'])
    async def test_malformed_header(self, client: AsyncClient, header):
        response = await client.get('/api/installations', headers={'Authorization': header})

        assert response.status_code == 401
        assert response.json() == {'error': 'Invalid Authorization header format'}

    @pytest.mark.asyncio
    async def test_invalid_token(self, client: AsyncClient):
        response = await client.get('/api/installations', headers={'Authorization': 'Bearer not.a.jwt'})

        assert response.status_code == 401
        assert response.json() == {'error': 'Invalid or expired token'}

    @pytest.mark.asyncio
    async def test_server_without_jwt_secret(self, data_dir, static_environ):
        from httpx import ASGITransport

        app = create_app(make_settings(data_dir, JWT_SECRET=None), static_user_environ=static_environ)
        async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
            response = await ac.get('/api/installations', headers={'Authorization': 'Bearer anything'})

        assert response.status_code == 500
        assert response.json() == {'error': 'Server is missing JWT configuration'}


class TestCreateInstallation:

    @pytest.mark.asyncio
    async def test_create_normalizes_and_stamps_owner(self, client: AsyncClient, auth_headers, valid_payload):
        response = await client.post('/api/installations', json=valid_payload, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data['state'] == 'IL'
        assert data['systemSize'] == 5.5
        assert data['ownerId'] == 'env-1'
        assert data['ownerUsername'] == 'fieldcrew'
        assert data['id']
        assert data['createdAt']
        assert 'updatedAt' not in data

    @pytest.mark.asyncio
    async def test_created_record_resolves_to_midwest(self, client: AsyncClient, auth_headers, valid_payload):
        created = (await client.post('/api/installations', json=valid_payload, headers=auth_headers)).json()

        response = await client.get(f"/api/installations/{created['id']}/territory", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()['code'] == 'MIDWEST_UTIL'
        assert response.json()['name'] == 'Midwest Utility Network'

    @pytest.mark.asyncio
    async def test_negative_system_size_rejected(self, client: AsyncClient, auth_headers, valid_payload):
        valid_payload['systemSize'] = -3
        response = await client.post('/api/installations', json=valid_payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {'error': 'System size must be a positive number'}

        listing = await client.get('/api/installations', headers=auth_headers)
        assert listing.json() == []

    @pytest.mark.asyncio
    async def test_multiple_errors_are_joined(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/installations', json={'homeownerName': 'Jo'}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()['error'].startswith('Street address is required; City is required')

    @pytest.mark.asyncio
    async def test_non_object_body(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/installations', json=['not', 'an', 'object'], headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {'error': 'Installation payload must be an object'}


class TestBulkCreate:

    @pytest.mark.asyncio
    async def test_bulk_all_valid(self, client: AsyncClient, auth_headers):
        rows = [random_installation() for _ in range(3)]
        response = await client.post('/api/installations/bulk', json={'installations': rows}, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data['added'] == 3
        assert [r['homeownerName'] for r in data['installations']] == [r['homeownerName'] for r in rows]

        listing = await client.get('/api/installations', headers=auth_headers)
        assert len(listing.json()) == 3

    @pytest.mark.asyncio
    async def test_one_bad_row_rejects_whole_batch(self, client: AsyncClient, auth_headers, valid_payload):
        rows = [random_installation() for _ in range(3)]
        rows.append(dict(valid_payload, systemSize=0))

        response = await client.post('/api/installations/bulk', json={'installations': rows}, headers=auth_headers)

        assert response.status_code == 400
        data = response.json()
        assert data['failures'] == [{'index': 3, 'errors': ['System size must be a positive number']}]

        listing = await client.get('/api/installations', headers=auth_headers)
        assert listing.json() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize('body', [{}, {'installations': []}, {'installations': 'rows'}, []])
    async def test_requires_non_empty_array(self, client: AsyncClient, auth_headers, body):
        response = await client.post('/api/installations/bulk', json=body, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {'error': 'installations must be a non-empty array'}


class TestReadUpdateDelete:

    @pytest.mark.asyncio
    async def test_get_by_id(self, client: AsyncClient, auth_headers, valid_payload):
        created = (await client.post('/api/installations', json=valid_payload, headers=auth_headers)).json()

        response = await client.get(f"/api/installations/{created['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == created

    @pytest.mark.asyncio
    @pytest.mark.parametrize('method', ['get', 'delete'])
    async def test_unknown_id_is_404(self, client: AsyncClient, auth_headers, method):
        response = await getattr(client, method)('/api/installations/does-not-exist', headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {'error': 'Installation not found'}

    @pytest.mark.asyncio
    async def test_territory_for_unknown_id_is_404(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/installations/does-not-exist/territory', headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_keeps_protected_fields(self, client: AsyncClient, auth_headers, valid_payload):
        created = (await client.post('/api/installations', json=valid_payload, headers=auth_headers)).json()

        changes = dict(valid_payload, city='Chicago', id='forged', ownerId='intruder', createdAt='1999-01-01')
        response = await client.put(f"/api/installations/{created['id']}", json=changes, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['city'] == 'Chicago'
        assert data['id'] == created['id']
        assert data['ownerId'] == created['ownerId']
        assert data['createdAt'] == created['createdAt']
        assert data['updatedAt']

    @pytest.mark.asyncio
    async def test_update_validates_payload(self, client: AsyncClient, auth_headers, valid_payload):
        created = (await client.post('/api/installations', json=valid_payload, headers=auth_headers)).json()

        bad = dict(valid_payload, systemSize='lots')
        response = await client.put(f"/api/installations/{created['id']}", json=bad, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {'error': 'System size must be a positive number'}

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, client: AsyncClient, auth_headers, valid_payload):
        response = await client.put('/api/installations/nope', json=valid_payload, headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, auth_headers, valid_payload):
        created = (await client.post('/api/installations', json=valid_payload, headers=auth_headers)).json()

        response = await client.delete(f"/api/installations/{created['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {'message': 'Installation deleted successfully'}
        again = await client.get(f"/api/installations/{created['id']}", headers=auth_headers)
        assert again.status_code == 404


class TestPartitionIsolation:

    @pytest.mark.asyncio
    async def test_other_users_records_are_invisible(self, app, client: AsyncClient, auth_headers, valid_payload):
        created = (await client.post('/api/installations', json=valid_payload, headers=auth_headers)).json()
        bob = headers_for(app, UserIdentity(id='user-2', username='bob'))

        assert (await client.get('/api/installations', headers=bob)).json() == []
        assert (await client.get(f"/api/installations/{created['id']}", headers=bob)).status_code == 404
        assert (await client.delete(f"/api/installations/{created['id']}", headers=bob)).status_code == 404

        mine = await client.get('/api/installations', headers=auth_headers)
        assert [r['id'] for r in mine.json()] == [created['id']]

    @pytest.mark.asyncio
    async def test_partition_file_named_after_username(self, app, client: AsyncClient, valid_payload, data_dir):
        headers = headers_for(app, UserIdentity(id='user-3', username='Alice.Smith'))
        await client.post('/api/installations', json=valid_payload, headers=headers)

        assert (data_dir / 'installations' / 'alice-smith.development.json').exists()
