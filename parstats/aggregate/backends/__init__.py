"""
Compute backends implementing the aggregation kernels.

    cpu: numpy reference backend (always available)
    gpu: PyTorch backend for CUDA / MPS (requires the 'gpu' extra)
"""
