"""
Test suite for vault routes.
Tests cover masked listing, entry CRUD and the re-authenticated reveal flow.
"""

import logging
import pytest

from models import db, VaultEntry, MASKED_SECRET
from tests.conftest import ALICE, BOB, bearer, create_entry, password_category_id

SECRET = 'Tr0ub4dor&3'
MISSING_ID = '00000000-0000-4000-8000-000000000000'


class TestVaultAccess:
    """Vault routes require a valid bearer token."""

    @pytest.mark.parametrize('method,url', [
        ('GET', '/vault/'),
        ('POST', '/vault/'),
        ('GET', f'/vault/{MISSING_ID}'),
        ('PUT', f'/vault/{MISSING_ID}'),
        ('DELETE', f'/vault/{MISSING_ID}'),
        ('POST', f'/vault/{MISSING_ID}/reveal'),
    ])
    def test_requires_auth(self, client, method, url):
        response = client.open(url, method=method, json={})
        assert response.status_code == 401


class TestCreateEntry:
    def test_create_stores_ciphertext_only(self, client, app, alice):
        entry = create_entry(client, alice['accessToken'], SECRET)
        assert entry['password'] == MASKED_SECRET
        assert entry['category'] == 'Social'

        with app.app_context():
            row = db.session.get(VaultEntry, entry['id'])
            assert row.encrypted_secret != SECRET
            assert SECRET not in row.encrypted_secret

    def test_create_rejects_foreign_category(self, client, alice, bob):
        response = client.post('/vault/', headers=bearer(alice['accessToken']), json={
            'website': 'example.com',
            'username': 'alice',
            'password': SECRET,
            'categoryId': password_category_id(client, bob['accessToken']),
        })
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Invalid category'

    def test_create_rejects_transaction_category(self, client, alice):
        response = client.get('/categories/transaction', headers=bearer(alice['accessToken']))
        category_id = response.get_json()['data'][0]['id']
        response = client.post('/vault/', headers=bearer(alice['accessToken']), json={
            'website': 'example.com',
            'username': 'alice',
            'password': SECRET,
            'categoryId': category_id,
        })
        assert response.status_code == 400

    @pytest.mark.parametrize('override', [
        {'website': ''},
        {'website': 'w' * 101},
        {'username': ''},
        {'password': 'short'},
        {'categoryId': 'not-a-uuid'},
        {'notes': 'n' * 501},
    ])
    def test_create_validation(self, client, alice, override):
        payload = {
            'website': 'example.com',
            'username': 'alice',
            'password': SECRET,
            'categoryId': password_category_id(client, alice['accessToken']),
        }
        payload.update(override)
        response = client.post('/vault/', headers=bearer(alice['accessToken']), json=payload)
        assert response.status_code == 400


class TestListEntries:
    def test_listing_is_masked(self, client, alice):
        create_entry(client, alice['accessToken'], SECRET)
        response = client.get('/vault/', headers=bearer(alice['accessToken']))
        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['pagination']['total'] == 1
        assert data['passwords'][0]['password'] == MASKED_SECRET
        assert SECRET.encode() not in response.data

    def test_listing_scoped_to_owner(self, client, alice, bob):
        create_entry(client, alice['accessToken'], SECRET)
        response = client.get('/vault/', headers=bearer(bob['accessToken']))
        assert response.get_json()['data']['passwords'] == []

    def test_pagination_and_search(self, client, alice):
        token = alice['accessToken']
        for website in ('github.com', 'gitlab.com', 'bank.example'):
            create_entry(client, token, SECRET, website=website)

        response = client.get('/vault/?search=GIT&limit=1&page=2', headers=bearer(token))
        data = response.get_json()['data']
        assert data['pagination'] == {'page': 2, 'limit': 1, 'total': 2, 'totalPages': 2}
        assert len(data['passwords']) == 1

    @pytest.mark.parametrize('query', ['page=0', 'limit=101', 'limit=abc'])
    def test_pagination_validation(self, client, alice, query):
        response = client.get(f'/vault/?{query}', headers=bearer(alice['accessToken']))
        assert response.status_code == 400


class TestUpdateDelete:
    def test_update_reencrypts_secret(self, client, alice):
        token = alice['accessToken']
        entry = create_entry(client, token, SECRET)

        response = client.put(f"/vault/{entry['id']}", headers=bearer(token),
                              json={'password': 'N3w-secret!', 'website': 'new.example'})
        assert response.status_code == 200
        assert response.get_json()['data']['website'] == 'new.example'

        response = client.post(f"/vault/{entry['id']}/reveal", headers=bearer(token),
                               json={'password': ALICE['password']})
        assert response.get_json()['data']['password'] == 'N3w-secret!'

    def test_update_foreign_entry(self, client, alice, bob):
        entry = create_entry(client, alice['accessToken'], SECRET)
        response = client.put(f"/vault/{entry['id']}", headers=bearer(bob['accessToken']),
                              json={'website': 'stolen.example'})
        assert response.status_code == 404

    def test_soft_delete(self, client, app, alice):
        token = alice['accessToken']
        entry = create_entry(client, token, SECRET)

        response = client.delete(f"/vault/{entry['id']}", headers=bearer(token))
        assert response.status_code == 200
        assert client.get(f"/vault/{entry['id']}", headers=bearer(token)).status_code == 404

        with app.app_context():
            assert db.session.get(VaultEntry, entry['id']).is_deleted is True

    def test_invalid_id(self, client, alice):
        response = client.get('/vault/not-a-uuid', headers=bearer(alice['accessToken']))
        assert response.status_code == 400


class TestReveal:
    """Test the re-authenticated reveal flow."""

    def test_reveal_with_correct_password(self, client, alice):
        entry = create_entry(client, alice['accessToken'], SECRET)
        response = client.post(f"/vault/{entry['id']}/reveal", headers=bearer(alice['accessToken']),
                               json={'password': ALICE['password']})
        assert response.status_code == 200
        assert response.get_json() == {'success': True, 'data': {'password': SECRET}}

    def test_reveal_with_wrong_password(self, client, alice):
        token = alice['accessToken']
        entry = create_entry(client, token, SECRET)
        response = client.post(f"/vault/{entry['id']}/reveal", headers=bearer(token),
                               json={'password': 'wrong-password'})
        assert response.status_code == 401
        assert SECRET.encode() not in response.data

        # entry stays masked
        response = client.get(f"/vault/{entry['id']}", headers=bearer(token))
        assert response.get_json()['data']['password'] == MASKED_SECRET

    def test_wrong_password_checked_before_entry_lookup(self, client, alice):
        """A bad password gets 401 whether or not the entry exists."""
        response = client.post(f'/vault/{MISSING_ID}/reveal', headers=bearer(alice['accessToken']),
                               json={'password': 'wrong-password'})
        assert response.status_code == 401

    def test_wrong_password_checked_before_id_validation(self, client, alice):
        token = alice['accessToken']
        response = client.post('/vault/not-a-uuid/reveal', headers=bearer(token), json={'password': 'wrong-password'})
        assert response.status_code == 401

        response = client.post('/vault/not-a-uuid/reveal', headers=bearer(token), json={'password': ALICE['password']})
        assert response.status_code == 400

    def test_reveal_foreign_entry(self, client, alice, bob):
        entry = create_entry(client, alice['accessToken'], SECRET)

        response = client.post(f"/vault/{entry['id']}/reveal", headers=bearer(bob['accessToken']),
                               json={'password': 'wrong-password'})
        assert response.status_code == 401
        assert SECRET.encode() not in response.data

        response = client.post(f"/vault/{entry['id']}/reveal", headers=bearer(bob['accessToken']),
                               json={'password': BOB['password']})
        assert response.status_code == 404
        assert SECRET.encode() not in response.data

    def test_reveal_deleted_entry(self, client, alice):
        token = alice['accessToken']
        entry = create_entry(client, token, SECRET)
        client.delete(f"/vault/{entry['id']}", headers=bearer(token))
        response = client.post(f"/vault/{entry['id']}/reveal", headers=bearer(token),
                               json={'password': ALICE['password']})
        assert response.status_code == 404

    def test_reveal_requires_password(self, client, alice):
        entry = create_entry(client, alice['accessToken'], SECRET)
        response = client.post(f"/vault/{entry['id']}/reveal", headers=bearer(alice['accessToken']), json={})
        assert response.status_code == 400

    def test_reveal_corrupted_ciphertext(self, client, app, alice):
        token = alice['accessToken']
        entry = create_entry(client, token, SECRET)
        with app.app_context():
            row = db.session.get(VaultEntry, entry['id'])
            row.encrypted_secret = 'corrupted'
            db.session.commit()

        response = client.post(f"/vault/{entry['id']}/reveal", headers=bearer(token),
                               json={'password': ALICE['password']})
        assert response.status_code == 500
        assert response.get_json() == {'success': False, 'message': 'Unable to reveal password'}

    def test_reveal_after_key_change(self, client, app, alice):
        token = alice['accessToken']
        entry = create_entry(client, token, SECRET)
        app.config['VAULT_ENCRYPTION_KEY'] = 'rotated-without-migration'
        app.extensions.pop('vault_cipher', None)

        response = client.post(f"/vault/{entry['id']}/reveal", headers=bearer(token),
                               json={'password': ALICE['password']})
        assert response.status_code == 500
        assert SECRET.encode() not in response.data

    def test_each_reveal_is_reauthenticated(self, client, alice):
        token = alice['accessToken']
        entry = create_entry(client, token, SECRET)
        url = f"/vault/{entry['id']}/reveal"
        assert client.post(url, headers=bearer(token), json={'password': ALICE['password']}).status_code == 200
        assert client.post(url, headers=bearer(token), json={'password': 'wrong'}).status_code == 401

    def test_plaintext_never_logged(self, client, alice, caplog):
        caplog.set_level(logging.DEBUG)
        entry = create_entry(client, alice['accessToken'], SECRET)
        client.post(f"/vault/{entry['id']}/reveal", headers=bearer(alice['accessToken']),
                    json={'password': ALICE['password']})
        assert 'revealed' in caplog.text
        assert SECRET not in caplog.text
        assert ALICE['password'] not in caplog.text
