import numpy as np
import pytest

from hopnet.networks.errors import DimensionMismatchError, InvalidNoiseLevelError
from hopnet.networks.pattern import (
    add_noise,
    encode,
    image_to_pattern,
    overlap,
    pattern_to_image,
    similarity_matrix,
)


def test_encode_threshold_maps_zero_to_minus_one():
    np.testing.assert_array_equal(encode([-1.0, 0.0, 0.3]), [-1.0, -1.0, 1.0])


def test_encode_large_values():
    np.testing.assert_array_equal(encode([1.0, -10.0, 0.0]), [1.0, -1.0, -1.0])
    np.testing.assert_array_equal(encode([1.0, 10.0]), [1.0, 1.0])


@pytest.mark.parametrize("raw", [
    [0.5, -0.5, 0.0, 3.0],
    [-1e-12, 1e-12],
    [1.0, -1.0, 1.0],
    [],
])
def test_encode_is_idempotent(raw):
    once = encode(raw)
    np.testing.assert_array_equal(encode(once), once)


def test_encode_empty_and_does_not_mutate():
    assert encode([]).shape == (0,)
    raw = np.array([2.0, -3.0])
    encode(raw)
    np.testing.assert_array_equal(raw, [2.0, -3.0])


def test_add_noise_returns_new_pattern():
    p = encode([1.0, 1.0, -1.0, 0.0])
    noisy = add_noise(p, 50, rng=0)
    np.testing.assert_array_equal(p, [1.0, 1.0, -1.0, -1.0])
    assert noisy is not p
    flipped = int(np.sum(noisy != p))
    # two draws with replacement
    assert 1 <= flipped <= 2


def test_add_noise_flips_at_most_percent(rng):
    p = encode(rng.normal(size=200))
    noisy = add_noise(p, 25, rng=rng)
    flipped = int(np.sum(noisy != p))
    assert 0 < flipped <= 50
    assert set(np.unique(noisy)) <= {-1.0, 1.0}


def test_add_noise_is_reproducible_with_seed():
    p = encode(np.linspace(-1, 1, 50))
    np.testing.assert_array_equal(add_noise(p, 30, rng=7), add_noise(p, 30, rng=7))


def test_add_noise_zero_percent_is_a_copy():
    p = encode([1.0, -1.0, 1.0])
    noisy = add_noise(p, 0)
    np.testing.assert_array_equal(noisy, p)
    assert noisy is not p


def test_add_noise_rounds_flip_count_down():
    p = np.ones(3)
    # floor(0.5 * 3) == 1 draw
    assert int(np.sum(add_noise(p, 50, rng=3) != p)) == 1


@pytest.mark.parametrize("percent", [-1, 101, 12.5, None, "50", True, float("nan")])
def test_add_noise_rejects_invalid_percent(percent):
    with pytest.raises(InvalidNoiseLevelError):
        add_noise(np.ones(4), percent)


def test_image_to_pattern_white_image():
    img = np.ones((2, 2))
    np.testing.assert_array_equal(image_to_pattern(img), encode([1.0, 1.0, 1.0, 1.0]))


def test_image_to_pattern_rgba_row_major():
    img = np.zeros((2, 2, 4))
    img[0, 1, :3] = 1.0
    img[..., 3] = 1.0  # alpha is ignored
    np.testing.assert_array_equal(image_to_pattern(img), [-1.0, 1.0, -1.0, -1.0])


def test_image_to_pattern_rejects_bad_dimensions():
    with pytest.raises(DimensionMismatchError):
        image_to_pattern(np.ones(4))


def test_pattern_to_image():
    p = encode([1.0, 1.0, -1.0, 0.0])
    img = pattern_to_image(p, (2, 2))
    assert img.dtype == np.uint8
    np.testing.assert_array_equal(img, [[255, 255], [0, 0]])


def test_pattern_to_image_keeps_only_the_sign():
    raw = np.array([[0.2, -5.0], [0.0, 200.0]])
    img = pattern_to_image(image_to_pattern(raw), raw.shape)
    np.testing.assert_array_equal(img, [[255, 0], [0, 255]])


def test_pattern_to_image_shape_mismatch():
    with pytest.raises(DimensionMismatchError):
        pattern_to_image(np.ones(4), (3, 3))


def test_overlap_and_similarity():
    a = np.array([1.0, -1.0, 1.0, -1.0])
    assert overlap(a, a) == 1.0
    assert overlap(a, -a) == -1.0
    assert overlap(a, np.ones(4)) == 0.0
    with pytest.raises(DimensionMismatchError):
        overlap(a, np.ones(3))

    sim = similarity_matrix([a, -a, np.ones(4)])
    assert sim.shape == (3, 3)
    np.testing.assert_allclose(np.diag(sim), 1.0)
    assert sim[0, 1] == -1.0


@pytest.mark.parametrize("percent", [50, 50.0, np.int64(50)])
def test_add_noise_accepts_integer_valued_percent(percent):
    noisy = add_noise(np.ones(10), percent, rng=0)
    assert 1 <= int(np.sum(noisy < 0)) <= 5
