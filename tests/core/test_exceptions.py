"""
Tests for the parstats exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via ParStatsError)
    - Diagnostic attributes on DispatchError and KernelBuildError
    - Default attribute values (None for optional attributes)
"""

import pytest

from parstats.core.exceptions import (
    DimensionError,
    DispatchError,
    KernelBuildError,
    ParStatsError,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via ParStatsError."""

    def test_validation_error_is_parstats_error(self):
        with pytest.raises(ParStatsError):
            raise ValidationError("bad input")

    def test_dimension_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise DimensionError("wrong shape")

    def test_dispatch_error_is_parstats_error(self):
        with pytest.raises(ParStatsError):
            raise DispatchError("device lost")

    def test_kernel_build_error_is_dispatch_error(self):
        with pytest.raises(DispatchError):
            raise KernelBuildError("no such kernel")

    def test_dispatch_error_is_not_validation_error(self):
        """Backend failures are distinct from precondition violations."""
        assert not isinstance(DispatchError("x"), ValidationError)


# ═══════════════════════════════════════════════════════════════════════
# DispatchError
# ═══════════════════════════════════════════════════════════════════════


class TestDispatchError:

    def test_all_attributes(self):
        err = DispatchError(
            "kernel failed",
            kernel="reduce_add",
            backend_name="gpu_cuda_aggregate",
            diagnostic="CUDA error: an illegal memory access was encountered",
        )
        assert str(err) == "kernel failed"
        assert err.kernel == "reduce_add"
        assert err.backend_name == "gpu_cuda_aggregate"
        assert "illegal memory access" in err.diagnostic

    def test_defaults_are_none(self):
        err = DispatchError("kernel failed")
        assert err.kernel is None
        assert err.backend_name is None
        assert err.diagnostic is None


# ═══════════════════════════════════════════════════════════════════════
# KernelBuildError
# ═══════════════════════════════════════════════════════════════════════


class TestKernelBuildError:

    def test_build_log_doubles_as_diagnostic(self):
        err = KernelBuildError(
            "no kernel", kernel="reduce_mul", backend_name="cpu_aggregate",
            build_log="available kernels: reduce_add",
        )
        assert err.build_log == "available kernels: reduce_add"
        assert err.diagnostic == err.build_log
        assert err.kernel == "reduce_mul"

    def test_catchable_with_attributes(self):
        with pytest.raises(DispatchError) as exc_info:
            raise KernelBuildError("no kernel", kernel="k", build_log="log")
        assert exc_info.value.build_log == "log"
