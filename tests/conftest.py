from types import SimpleNamespace

import pytest

from axispay import checksum
from axispay.config import Settings
from axispay.envelope import SecureEnvelopeCodec
from axispay.keygen import generate_sandbox_material
from axispay.keys import KeyMaterialService, PemKeyProvider, Pkcs12KeyProvider
from axispay.payloads import unwrap_data, wrap_data
from axispay.transport import TransportResponse

P12_PASSWORD = "sandbox-pass"
CALLBACK_KEY_HEX = "00112233445566778899aabbccddeeff"
BASE_URL = "https://bank.test/gateway/api/txb/v3"


@pytest.fixture(scope="session")
def sandbox(tmp_path_factory):
    """Throwaway client and bank material, generated once per run."""
    return generate_sandbox_material(str(tmp_path_factory.mktemp("keys")), password=P12_PASSWORD)


@pytest.fixture(scope="session")
def client_keys(sandbox):
    service = KeyMaterialService(
        Pkcs12KeyProvider(sandbox.client_p12_path, P12_PASSWORD, sandbox.bank_cert_path)
    )
    service.initialize()
    return service


@pytest.fixture(scope="session")
def bank_keys(sandbox):
    # The bank's side: its own key, our certificate
    service = KeyMaterialService(
        PemKeyProvider(sandbox.bank_key_path, "", sandbox.client_cert_path)
    )
    service.initialize()
    return service


@pytest.fixture
def client_codec(client_keys):
    return SecureEnvelopeCodec(client_keys)


@pytest.fixture
def bank_codec(bank_keys):
    return SecureEnvelopeCodec(bank_keys)


@pytest.fixture
def settings(sandbox):
    return Settings(
        env="uat",
        base_url=BASE_URL,
        client_id="client-id",
        client_secret="client-secret",
        channel_id="CHAN01",
        corp_code="CORP01",
        user_id="ops_user",
        corp_acc_num="309010100067740",
        service_id="OpenAPI",
        service_version="1.0",
        client_p12_path=sandbox.client_p12_path,
        client_p12_password=P12_PASSWORD,
        bank_cert_path=sandbox.bank_cert_path,
        callback_aes_key_hex=CALLBACK_KEY_HEX,
        log_json=False,
    )


def success_reply(url, request_body):
    """Default bank answer: a checksummed success record."""
    data = unwrap_data(request_body)
    reply = {
        "status": "S",
        "message": "Success",
        "data": {"corpCode": data.get("corpCode", "")},
    }
    return wrap_data(checksum.with_checksum(reply))


class FakeBank:
    """
    Transport double. Opens each request the way the bank would and answers
    with a sealed reply built by ``responder(url, body)``.
    """

    def __init__(self, bank_codec, responder=success_reply, status_code=200):
        self.codec = bank_codec
        self.responder = responder
        self.status_code = status_code
        self.requests = []
        self.closed = False

    def post(self, url, token, headers):
        body = self.codec.verify_and_open(token)
        self.requests.append(SimpleNamespace(url=url, headers=headers, token=token, body=body))
        reply = self.responder(url, body)
        if isinstance(reply, str):
            text = reply
        else:
            text = self.codec.seal_and_sign(reply)
        return TransportResponse(status_code=self.status_code, text=text, headers={})

    def close(self):
        self.closed = True


@pytest.fixture
def fake_bank(bank_codec):
    return FakeBank(bank_codec)
