"""
Configuration manager for QuizCraft settings.
"""
import logging
import os
from typing import Any, Dict, List, Optional

from .models import QuizSettings


class ConfigManager:
    """Manages server, loader and storage settings with validation."""

    # Default configuration values
    DEFAULT_HOST = "127.0.0.1"
    DEFAULT_PORT = 8080
    DEFAULT_SESSION_SIZE = 20
    DEFAULT_REQUEST_TIMEOUT = 10
    DEFAULT_QUESTION_DIRECTORIES = ["public", "dist/spa", "spa"]
    DEFAULT_RESULTS_FILE = "./data/results.json"

    # Validation limits
    MIN_PORT = 1
    MAX_PORT = 65535
    MIN_SESSION_SIZE = 1
    MAX_SESSION_SIZE = 100
    MIN_REQUEST_TIMEOUT = 1
    MAX_REQUEST_TIMEOUT = 120

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings()

    def get_settings(self) -> QuizSettings:
        """
        Get a copy of the current settings.

        Returns:
            QuizSettings object with current configuration
        """
        return QuizSettings(
            host=self._settings.host,
            port=self._settings.port,
            question_directories=list(self._settings.question_directories),
            session_size=self._settings.session_size,
            base_url=self._settings.base_url,
            request_timeout=self._settings.request_timeout,
            results_file=self._settings.results_file,
        )

    def apply_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Apply a parsed config.json document, then environment overrides.

        Invalid values are reported and leave the previous setting in place.

        Args:
            config: Parsed configuration dictionary

        Returns:
            List of user-facing messages for settings that were rejected
        """
        rejected = []
        server = config.get('server', {}) or {}
        quiz = config.get('quiz', {}) or {}
        client = config.get('client', {}) or {}
        storage = config.get('storage', {}) or {}

        results = []
        if 'host' in server:
            results.append(self.set_host(server['host']))
        if 'port' in server:
            results.append(self.set_port(server['port']))
        if 'question_directories' in quiz:
            results.append(self.set_question_directories(quiz['question_directories']))
        if 'session_size' in quiz:
            results.append(self.set_session_size(quiz['session_size']))
        if 'base_url' in client:
            results.append(self.set_base_url(client['base_url']))
        if 'timeout' in client:
            results.append(self.set_request_timeout(client['timeout']))
        if 'results_file' in storage:
            results.append(self.set_results_file(storage['results_file']))

        results.extend(self.apply_environment())

        for result in results:
            if not result['success']:
                rejected.append(result['user_message'])
        return rejected

    def apply_environment(self, environ: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        """
        Apply QUIZCRAFT_HOST, QUIZCRAFT_PORT and QUIZCRAFT_BASE_URL overrides.

        Returns:
            Result dictionaries of the setters that ran
        """
        environ = os.environ if environ is None else environ
        results = []
        if environ.get('QUIZCRAFT_HOST'):
            results.append(self.set_host(environ['QUIZCRAFT_HOST']))
        if environ.get('QUIZCRAFT_PORT'):
            try:
                port = int(environ['QUIZCRAFT_PORT'])
            except ValueError:
                port = environ['QUIZCRAFT_PORT']
            results.append(self.set_port(port))
        if environ.get('QUIZCRAFT_BASE_URL'):
            results.append(self.set_base_url(environ['QUIZCRAFT_BASE_URL']))
        return results

    def set_host(self, host: str) -> Dict[str, Any]:
        """
        Set the address the server binds to.

        Args:
            host: Host name or IP address

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(host, str) or not host.strip():
            return self._reject(
                f"Host must be a non-empty string, got {host!r}",
                "❌ Invalid host: expected a host name or IP address"
            )

        self._settings.host = host.strip()
        return self._accept(f"Host set to {self._settings.host}")

    def set_port(self, port: int) -> Dict[str, Any]:
        """
        Set the port the server listens on.

        Args:
            port: TCP port number

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(port, int) or isinstance(port, bool):
            return self._reject(
                f"Port must be an integer, got {type(port).__name__}",
                f"❌ Invalid input: Expected a number, got {type(port).__name__}"
            )

        if port < self.MIN_PORT or port > self.MAX_PORT:
            return self._reject(
                f"Port must be between {self.MIN_PORT} and {self.MAX_PORT}",
                f"❌ Port out of range: use {self.MIN_PORT}-{self.MAX_PORT}"
            )

        self._settings.port = port
        return self._accept(f"Port set to {port}")

    def set_session_size(self, size: int) -> Dict[str, Any]:
        """
        Set how many questions one session holds when all sets are aggregated.

        Args:
            size: Questions per session

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(size, int) or isinstance(size, bool):
            return self._reject(
                f"Session size must be an integer, got {type(size).__name__}",
                f"❌ Invalid input: Expected a number, got {type(size).__name__}"
            )

        if size < self.MIN_SESSION_SIZE:
            return self._reject(
                f"Session size must be at least {self.MIN_SESSION_SIZE}",
                f"❌ Too few questions: Minimum is {self.MIN_SESSION_SIZE}"
            )

        if size > self.MAX_SESSION_SIZE:
            return self._reject(
                f"Session size cannot exceed {self.MAX_SESSION_SIZE}",
                f"❌ Too many questions: Maximum is {self.MAX_SESSION_SIZE}"
            )

        self._settings.session_size = size
        return self._accept(f"Session size set to {size}")

    def set_question_directories(self, directories: List[str]) -> Dict[str, Any]:
        """
        Set the ordered candidate directories searched for question sets.

        Args:
            directories: Directory paths, first existing one wins

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(directories, str):
            directories = [directories]

        if not isinstance(directories, list) or not directories:
            return self._reject(
                "Question directories must be a non-empty list",
                "❌ Provide at least one question directory"
            )

        if not all(isinstance(d, str) and d.strip() for d in directories):
            return self._reject(
                "Question directories must be non-empty strings",
                "❌ Directory paths cannot be empty"
            )

        self._settings.question_directories = [d.strip() for d in directories]
        return self._accept(f"Question directories set to {', '.join(self._settings.question_directories)}")

    def set_base_url(self, base_url: str) -> Dict[str, Any]:
        """
        Set the server URL the loader fetches question sets from.

        Args:
            base_url: http(s) URL of a QuizCraft server

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(base_url, str) or not base_url.startswith(("http://", "https://")):
            return self._reject(
                f"Base URL must start with http:// or https://, got {base_url!r}",
                "❌ Invalid server URL: it must start with http:// or https://"
            )

        self._settings.base_url = base_url.rstrip("/")
        return self._accept(f"Base URL set to {self._settings.base_url}")

    def set_request_timeout(self, timeout: int) -> Dict[str, Any]:
        """
        Set the per-request timeout of the loader.

        Args:
            timeout: Timeout in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(timeout, int) or isinstance(timeout, bool):
            return self._reject(
                f"Request timeout must be an integer, got {type(timeout).__name__}",
                f"❌ Invalid input: Expected a number, got {type(timeout).__name__}"
            )

        if timeout < self.MIN_REQUEST_TIMEOUT or timeout > self.MAX_REQUEST_TIMEOUT:
            return self._reject(
                f"Request timeout must be between {self.MIN_REQUEST_TIMEOUT} and {self.MAX_REQUEST_TIMEOUT} seconds",
                f"❌ Timeout out of range: use {self.MIN_REQUEST_TIMEOUT}-{self.MAX_REQUEST_TIMEOUT} seconds"
            )

        self._settings.request_timeout = timeout
        return self._accept(f"Request timeout set to {timeout} seconds")

    def set_results_file(self, path: str) -> Dict[str, Any]:
        """
        Set the JSON file that stores past results.

        Args:
            path: File path

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(path, str) or not path.strip():
            return self._reject(
                "Results file cannot be empty",
                "❌ Results file path cannot be empty"
            )

        self._settings.results_file = path.strip()
        return self._accept(f"Results file set to {self._settings.results_file}")

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = QuizSettings()
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        if not self.MIN_PORT <= self._settings.port <= self.MAX_PORT:
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid port: {self._settings.port}")

        if not self.MIN_SESSION_SIZE <= self._settings.session_size <= self.MAX_SESSION_SIZE:
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid session size: {self._settings.session_size}")

        if not self.MIN_REQUEST_TIMEOUT <= self._settings.request_timeout <= self.MAX_REQUEST_TIMEOUT:
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid request timeout: {self._settings.request_timeout}")

        if not self._settings.question_directories:
            validation_result["valid"] = False
            validation_result["issues"].append("No question directories configured")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"QuizCraft Settings:\n"
            f"• Server: {self._settings.host}:{self._settings.port}\n"
            f"• Question Directories: {', '.join(self._settings.question_directories)}\n"
            f"• Session Size: {self._settings.session_size} questions\n"
            f"• Server URL: {self._settings.base_url}\n"
            f"• Request Timeout: {self._settings.request_timeout} seconds\n"
            f"• Results File: {self._settings.results_file}"
        )

    def _accept(self, message: str) -> Dict[str, Any]:
        self.logger.info(message)
        return {
            'success': True,
            'message': message,
            'user_message': f"✅ {message}"
        }

    def _reject(self, error_msg: str, user_message: str) -> Dict[str, Any]:
        self.logger.error(error_msg)
        return {
            'success': False,
            'error': error_msg,
            'user_message': user_message
        }
