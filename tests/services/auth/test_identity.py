import base64
import json
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

import requests
from google.auth.exceptions import RefreshError
from oauthlib.oauth2.rfc6749.errors import AccessDeniedError

# Module to test
from tanklog.services.auth import identity, profile
from tanklog.services.auth.identity import GoogleIdentityProvider, refresh_error_code
from tanklog.utils.error_utils import IdentityError

CLIENT_CONFIG = {'installed': {'client_id': 'cid.apps.googleusercontent.com', 'client_secret': 'shh',
                               'auth_uri': 'https://accounts.google.com/o/oauth2/auth',
                               'token_uri': 'https://oauth2.googleapis.com/token'}}
AUTHORIZED_USER = {'client_id': 'cid', 'client_secret': 'shh', 'refresh_token': 'refresh-1',
                   'token_uri': 'https://oauth2.googleapis.com/token'}


def fake_credentials(token='access-1', refresh_token='refresh-1'):
    creds = MagicMock()
    creds.token = token
    creds.refresh_token = refresh_token
    creds.expiry = None
    creds.granted_scopes = ['openid', 'https://www.googleapis.com/auth/spreadsheets']
    creds.id_token = None
    creds.to_json.return_value = json.dumps(dict(AUTHORIZED_USER, refresh_token=refresh_token))
    return creds


def unsigned_jwt(payload):
    def segment(data):
        return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b'=').decode()
    return f"{segment({'alg': 'RS256', 'typ': 'JWT'})}.{segment(payload)}.c2ln"


class TestRefreshErrorCode(unittest.TestCase):

    def test_code_from_response_body(self):
        error = RefreshError('invalid_grant: Token has been expired or revoked.',
                             {'error': 'invalid_grant', 'error_description': 'Token has been expired or revoked.'})
        self.assertEqual(refresh_error_code(error), 'invalid_grant')

    def test_code_from_message_prefix(self):
        self.assertEqual(refresh_error_code(RefreshError('invalid_client: Unauthorized')), 'invalid_client')

    def test_unknown_shape(self):
        self.assertEqual(refresh_error_code(RefreshError('The credentials do not contain the necessary fields')),
                         'refresh_failed')


class TestGoogleIdentityProvider(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.token_path = os.path.join(self.tmp.name, 'google_token.json')
        self.flow = MagicMock()
        self.flow_factory = MagicMock(return_value=self.flow)
        self.provider = GoogleIdentityProvider(CLIENT_CONFIG, self.token_path, flow_factory=self.flow_factory,
                                               request_factory=MagicMock())

    def tearDown(self):
        self.tmp.cleanup()

    def _store_refresh_token(self):
        with open(self.token_path, 'w') as f:
            json.dump(AUTHORIZED_USER, f)

    async def test_load_requires_client_config(self):
        provider = GoogleIdentityProvider(None, self.token_path)
        with self.assertRaises(IdentityError) as ctx:
            await provider.load()
        self.assertEqual(ctx.exception.code, 'identity_unavailable')
        self.assertFalse(provider.ready)

    async def test_request_before_load(self):
        with self.assertRaises(IdentityError) as ctx:
            await self.provider.request_token('none')
        self.assertEqual(ctx.exception.code, 'identity_unavailable')

    async def test_silent_request_without_refresh_token(self):
        await self.provider.load()
        with self.assertRaises(IdentityError) as ctx:
            await self.provider.request_token('none', 'alice@example.com')
        self.assertEqual(ctx.exception.code, 'login_required')

    @patch('tanklog.services.auth.identity.Credentials')
    async def test_silent_request_refreshes_stored_token(self, mock_credentials):
        self._store_refresh_token()
        creds = fake_credentials()
        mock_credentials.from_authorized_user_info.return_value = creds
        await self.provider.load()

        response = await self.provider.request_token('none')

        self.assertEqual(response.access_token, 'access-1')
        self.assertEqual(response.expires_in, identity.DEFAULT_EXPIRES_IN)
        self.assertIn('spreadsheets', response.scope)
        mock_credentials.from_authorized_user_info.assert_called_once_with(AUTHORIZED_USER, self.provider.scopes)
        creds.refresh.assert_called_once()
        self.flow_factory.assert_not_called()

    @patch('tanklog.services.auth.identity.Credentials')
    async def test_revoked_refresh_token_is_forgotten(self, mock_credentials):
        self._store_refresh_token()
        creds = fake_credentials()
        creds.refresh.side_effect = RefreshError('invalid_grant: Token has been expired or revoked.',
                                                 {'error': 'invalid_grant'})
        mock_credentials.from_authorized_user_info.return_value = creds
        await self.provider.load()

        with self.assertRaises(IdentityError) as ctx:
            await self.provider.request_token('none')

        self.assertEqual(ctx.exception.code, 'invalid_grant')
        self.assertFalse(os.path.exists(self.token_path))

    async def test_interactive_request_runs_consent_flow_and_stores_token(self):
        self.flow.run_local_server.return_value = fake_credentials(token='access-2', refresh_token='refresh-2')
        await self.provider.load()

        response = await self.provider.request_token('consent', 'alice@example.com')

        self.assertEqual(response.access_token, 'access-2')
        self.flow.run_local_server.assert_called_once_with(port=0, prompt='consent', login_hint='alice@example.com')
        with open(self.token_path) as f:
            self.assertEqual(json.load(f)['refresh_token'], 'refresh-2')

    async def test_interactive_request_denied(self):
        self.flow.run_local_server.side_effect = AccessDeniedError()
        await self.provider.load()

        with self.assertRaises(IdentityError) as ctx:
            await self.provider.request_token('select_account')

        self.assertEqual(ctx.exception.code, 'access_denied')

    async def test_interactive_request_cannot_open_browser(self):
        self.flow.run_local_server.side_effect = OSError('Address already in use')
        await self.provider.load()

        with self.assertRaises(IdentityError) as ctx:
            await self.provider.request_token('select_account')

        self.assertEqual(ctx.exception.code, 'popup_failed_to_open')

    def test_forget_is_idempotent(self):
        self._store_refresh_token()
        self.provider.forget()
        self.provider.forget()
        self.assertFalse(os.path.exists(self.token_path))

    @patch('tanklog.services.auth.identity.requests.post')
    async def test_revoke(self, mock_post):
        await self.provider.revoke('access-1')
        self.assertEqual(mock_post.call_args[1]['params'], {'token': 'access-1'})

    @patch('tanklog.services.auth.identity.requests.post')
    async def test_revoke_network_failure(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('offline')
        with self.assertRaises(IdentityError) as ctx:
            await self.provider.revoke('access-1')
        self.assertEqual(ctx.exception.code, 'revoke_failed')


class TestProfile(unittest.TestCase):

    def test_decode_id_token_profile(self):
        token = unsigned_jwt({'sub': '42', 'email': 'bob@example.com', 'name': 'Bob', 'picture': 'https://p'})
        result = profile.decode_id_token_profile(token)
        self.assertEqual(result.email, 'bob@example.com')
        self.assertEqual(result.picture, 'https://p')

    def test_decode_garbage(self):
        self.assertIsNone(profile.decode_id_token_profile('not-a-jwt'))
        self.assertIsNone(profile.decode_id_token_profile(''))

    @patch('tanklog.services.auth.profile.requests.get')
    def test_fetch_user_profile(self, mock_get):
        mock_get.return_value.json.return_value = {'sub': '42', 'email': 'bob@example.com', 'name': 'Bob'}

        result = profile.fetch_user_profile('access-1', url='https://userinfo.test')

        self.assertEqual(result.name, 'Bob')
        mock_get.assert_called_once_with('https://userinfo.test', headers={'Authorization': 'Bearer access-1'},
                                         timeout=10)


if __name__ == '__main__':
    unittest.main()
