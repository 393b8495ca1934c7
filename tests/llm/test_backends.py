import unittest
from unittest.mock import Mock

from vc_ai_commits.llm.backends import ClaudeCodeBackend, LlmBackend, OllamaBackend, create_backend
from vc_ai_commits.llm.cli_runner import ClaudeCodeRunner
from vc_ai_commits.llm.ollama_client import LLMError, OllamaClient
from vc_ai_commits.llm.results import ErrorKind, GenerationResult
from vc_ai_commits.llm.verification import PROBE_PROMPT, verify_configuration
from vc_ai_commits.service.cancellation import CancellationToken
from vc_ai_commits.service.credentials import EnvironmentCredentialStore


class StubBackend(LlmBackend):
    name = "stub"

    def __init__(self, result):
        self.result = result
        self.prompts = []

    def generate(self, prompt, token=None):
        self.prompts.append(prompt)
        return self.result


class TestCreateBackend(unittest.TestCase):
    def test_claude_code_backend(self) -> None:
        backend = create_backend({"backend": "claude_code", "claude_code": {"cli_path": "/bin/claude", "timeout": 30}})
        self.assertIsInstance(backend, ClaudeCodeBackend)
        self.assertEqual(backend.runner.cli_path, "/bin/claude")
        self.assertEqual(backend.runner.timeout, 30)
        self.assertIn("/bin/claude", backend.describe())

    def test_ollama_backend_with_credentials(self) -> None:
        store = EnvironmentCredentialStore({"AICOMMITS_OLLAMA_TOKEN": "abc"})
        backend = create_backend({"backend": "ollama", "ollama": {"model": "mistral"}}, store)
        self.assertIsInstance(backend, OllamaBackend)
        self.assertEqual(backend.client.model, "mistral")
        self.assertEqual(backend.client.api_key, "abc")

    def test_unknown_backend(self) -> None:
        with self.assertRaises(ValueError):
            create_backend({"backend": "gpt"})


class TestOllamaBackend(unittest.TestCase):
    def test_success(self) -> None:
        client = Mock(spec=OllamaClient)
        client.generate.return_value = "feat: add x"
        result = OllamaBackend(client).generate("p")
        self.assertEqual(result, GenerationResult.success("feat: add x"))

    def test_api_error(self) -> None:
        client = Mock(spec=OllamaClient)
        client.generate.side_effect = LLMError("LLM returned status 500: boom")
        result = OllamaBackend(client).generate("p")
        self.assertEqual(result.error, ErrorKind.API_ERROR)
        self.assertIn("boom", result.detail)

    def test_empty_response(self) -> None:
        client = Mock(spec=OllamaClient)
        client.generate.return_value = ""
        self.assertEqual(OllamaBackend(client).generate("p").error, ErrorKind.MISSING_RESULT)

    def test_cancelled_before_request(self) -> None:
        client = Mock(spec=OllamaClient)
        token = CancellationToken()
        token.cancel()
        self.assertEqual(OllamaBackend(client).generate("p", token=token).error, ErrorKind.CANCELLED)
        client.generate.assert_not_called()


class TestClaudeCodeBackend(unittest.TestCase):
    def test_delegates_to_runner(self) -> None:
        runner = Mock(spec=ClaudeCodeRunner)
        runner.run.return_value = GenerationResult.success("ok")
        token = CancellationToken()
        self.assertEqual(ClaudeCodeBackend(runner).generate("p", token=token).message, "ok")
        runner.run.assert_called_once_with("p", token=token)


class TestVerification(unittest.TestCase):
    def test_success(self) -> None:
        backend = StubBackend(GenerationResult.success("OK"))
        status = verify_configuration(backend)
        self.assertTrue(status.ok)
        self.assertEqual(status.text, "Configuration is valid")
        self.assertEqual(status.symbol, "✓")
        self.assertEqual(backend.prompts, [PROBE_PROMPT])

    def test_failure_is_wrapped(self) -> None:
        detail = "CLI exited with code 1: " + "authentication is required before use " * 3
        status = verify_configuration(StubBackend(GenerationResult.failure(ErrorKind.NON_ZERO_EXIT, detail)))
        self.assertFalse(status.ok)
        self.assertEqual(status.symbol, "✗")
        self.assertTrue(all(len(line) <= 60 for line in status.text.splitlines()))
        self.assertGreater(len(status.text.splitlines()), 1)

    def test_failure_without_detail(self) -> None:
        status = verify_configuration(StubBackend(GenerationResult.failure(ErrorKind.TIMEOUT)))
        self.assertEqual(status.text, "Unknown error")


if __name__ == "__main__":
    unittest.main()
