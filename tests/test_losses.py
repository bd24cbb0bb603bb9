import pytest
import torch

from dcgan.losses import GANLoss
from dcgan.train import get_default_config


@pytest.mark.parametrize("label_noise", [0.0, 0.05, 0.5])
def test_discriminator_targets_are_jittered_within_bounds(label_noise):
    loss_fn = GANLoss(real_label=1.0, fake_label=0.0, label_noise=label_noise)
    targets = loss_fn.discriminator_targets(50, 50)

    assert targets.shape == (100, 1)
    fake, real = targets[:50], targets[50:]
    assert fake.min() >= 0.0 and fake.max() <= label_noise
    assert real.min() >= 1.0 and real.max() <= 1.0 + label_noise


def test_discriminator_targets_are_random():
    loss_fn = GANLoss(label_noise=0.5)
    assert not torch.equal(loss_fn.discriminator_targets(10, 10), loss_fn.discriminator_targets(10, 10))


def test_generator_targets_are_all_real():
    loss_fn = GANLoss(real_label=1.0, label_noise=0.5)
    assert torch.equal(loss_fn.generator_targets(7), torch.ones(7, 1))


def test_label_noise_out_of_range():
    with pytest.raises(ValueError):
        GANLoss(label_noise=0.6)


def test_bce_matches_manual_value():
    loss_fn = GANLoss()
    logits = torch.zeros(2, 1)
    targets = torch.tensor([[1.0], [0.0]])
    assert loss_fn(logits, targets).item() == pytest.approx(0.693147, abs=1e-5)


def test_default_jitter_spans_half_a_label():
    loss_fn = GANLoss(**{k: get_default_config()[k] for k in ('real_label', 'fake_label', 'label_noise')})
    targets = loss_fn.discriminator_targets(5000, 5000)

    assert 0.4 < targets[:5000].max() <= 0.5
    assert 1.4 < targets[5000:].max() <= 1.5


def test_loss_accepts_jittered_targets_above_one():
    loss_fn = GANLoss(real_label=1.0, fake_label=0.0, label_noise=0.5)
    targets = loss_fn.discriminator_targets(8, 8)
    assert targets.max() > 1.0

    loss = loss_fn(torch.randn(16, 1), targets)
    assert torch.isfinite(loss)

    # Matches BCE on the sigmoid probabilities written out by hand
    logits = torch.randn(16, 1)
    p = torch.sigmoid(logits)
    expected = -(targets * torch.log(p) + (1 - targets) * torch.log(1 - p)).mean()
    assert loss_fn(logits, targets).item() == pytest.approx(expected.item(), rel=1e-4)
