"""Audio decoding, denoising, normalization and concatenation."""
