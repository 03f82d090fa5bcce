"""Unit tests for package structure and imports."""


class TestPackageStructure:
    """Test package structure and metadata."""

    def test_package_imports(self):
        import llm_dispatcher

        assert llm_dispatcher.__version__
        assert llm_dispatcher.get_version() == llm_dispatcher.__version__

    def test_version_format(self):
        from llm_dispatcher import __version__

        assert [part.isdigit() for part in __version__.split(".")] == [True, True, True]

    def test_public_api_exports(self):
        from llm_dispatcher import (
            DispatchRequest,
            DispatchResponse,
            Dispatcher,
            ProviderConfig,
            TokenUsage,
            ValidationException,
        )

        assert Dispatcher.initialize
        assert DispatchRequest(prompt="hi").effective_temperature() == 0.7
        assert DispatchResponse.model_fields["attempt_count"]
        assert ProviderConfig.model_fields["is_active"]
        assert TokenUsage().total is None
        assert ValidationException("bad").error_code == "VALIDATION_ERROR"

    def test_all_exports_resolve(self):
        import llm_dispatcher

        for name in llm_dispatcher.__all__:
            assert hasattr(llm_dispatcher, name), name
        assert "__author__" not in llm_dispatcher.__all__
