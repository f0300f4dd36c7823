#!/usr/bin/env python3
"""
End-to-End Test for ContentGuard
Runs against a live server with real provider credentials:
1. Health check
2. Read and update moderation settings with a session token
3. Create an API key
4. Submit safe text through the external API (should not be flagged)
5. Submit hateful text with a low threshold override (should be flagged)
6. Check the text history and delete the API key

Session tokens are minted locally with SUPABASE_JWT_SECRET, so point the
script at a server configured with the same secret.
"""

import os
import random
import string
import sys
import time

import requests
from jose import jwt


class ContentGuardE2ETest:
    def __init__(self, base_url: str = "http://localhost:5000"):
        self.base_url = base_url
        self.session = requests.Session()
        self.session.headers.update({'User-Agent': 'ContentGuard-E2E-Test/1.0'})

        # Random user so runs never share settings or history
        self.test_suffix = ''.join(random.choices(string.ascii_lowercase, k=8))
        self.user_id = f"e2e-{self.test_suffix}"
        self.session.headers.update({'Authorization': f"Bearer {self._session_token()}"})

        self.api_key = None
        self.api_key_id = None

    def _session_token(self) -> str:
        payload = {
            'sub': self.user_id,
            'aud': os.getenv('SUPABASE_JWT_AUDIENCE', 'authenticated'),
            'email': f"{self.user_id}@example.com",
            'exp': int(time.time()) + 3600,
        }
        return jwt.encode(payload, os.environ['SUPABASE_JWT_SECRET'], algorithm='HS256')

    def test_health_check(self) -> bool:
        """Test that the application is running with storage available"""
        response = self.session.get(f"{self.base_url}/health", timeout=10)
        return response.status_code == 200 and response.json().get('status') == 'healthy'

    def test_settings(self) -> bool:
        response = self.session.get(f"{self.base_url}/api/settings", timeout=10)
        if response.status_code != 200 or response.json().get('toxicity_threshold') != 0.7:
            return False

        response = self.session.put(
            f"{self.base_url}/api/settings",
            json={'theme': 'dark'},
            timeout=10
        )
        return response.status_code == 200 and response.json().get('theme') == 'dark'

    def create_api_key(self) -> bool:
        response = self.session.post(
            f"{self.base_url}/api/settings/api-key",
            json={'name': f"E2E Test Key {self.test_suffix}"},
            timeout=10
        )
        if response.status_code != 201:
            return False

        api_key = response.json().get('api_key', {})
        self.api_key = api_key.get('key')
        self.api_key_id = api_key.get('id')
        return bool(self.api_key)

    def test_safe_content_moderation(self) -> bool:
        """Text that should pass moderation"""
        if not self.api_key:
            return False

        response = requests.post(
            f"{self.base_url}/api/external/moderate-text",
            json={
                'text': "I appreciate your help with this project. The documentation is very clear and well-written.",
                'settings': {'categories': ['toxicity', 'bias']}
            },
            headers={'x-api-key': self.api_key},
            timeout=60
        )
        return response.status_code == 200 and response.json().get('flagged') is False

    def test_hateful_content_moderation(self) -> bool:
        """Hateful text with a low toxicity threshold should be flagged"""
        if not self.api_key:
            return False

        response = requests.post(
            f"{self.base_url}/api/external/moderate-text",
            json={
                'text': "I hate you and everyone like you, you are worthless.",
                'settings': {'toxicity_threshold': 0.1, 'categories': ['toxicity']}
            },
            headers={'x-api-key': self.api_key},
            timeout=60
        )
        if response.status_code != 200:
            return False

        toxicity = response.json().get('moderation_results', {}).get('toxicity', {})
        return response.json().get('flagged') is True and toxicity.get('flagged') is True

    def test_history(self) -> bool:
        response = self.session.get(f"{self.base_url}/api/moderate-text/history?pageSize=5", timeout=10)
        return response.status_code == 200 and response.json()['pagination']['total'] == 2

    def cleanup(self):
        """Delete the API key created for this run"""
        if self.api_key_id:
            self.session.delete(f"{self.base_url}/api/settings/api-key/{self.api_key_id}", timeout=10)

    def run_all_tests(self) -> bool:
        print("Starting ContentGuard end-to-end tests")

        tests = [
            ("Health Check", self.test_health_check),
            ("Settings", self.test_settings),
            ("API Key Creation", self.create_api_key),
            ("Safe Content", self.test_safe_content_moderation),
            ("Hateful Content", self.test_hateful_content_moderation),
            ("History", self.test_history),
        ]

        passed = 0
        total = len(tests)

        for test_name, test_func in tests:
            try:
                if test_func():
                    passed += 1
                    print(f"PASS {test_name}")
                else:
                    print(f"FAIL {test_name}")
            except (requests.RequestException, KeyError, ValueError) as e:
                print(f"FAIL {test_name} (exception: {type(e).__name__})")

        self.cleanup()

        print(f"\n{passed}/{total} tests passed")
        return passed == total


def main():
    """Main function to run E2E tests"""
    base_url = os.getenv('BASE_URL', 'http://localhost:5000')

    test_runner = ContentGuardE2ETest(base_url)

    if test_runner.run_all_tests():
        print("\nAll E2E tests passed successfully!")
        sys.exit(0)
    else:
        print("\nSome E2E tests failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
