import math
import os

import pytest
import torch

from dcgan import train as train_module
from dcgan.sample import DCGANSampler
from dcgan.train import DCGANTrainer
from tests.conftest import changed, snapshot

CPU = torch.device('cpu')


@pytest.fixture
def trainer(config, real_images):
    return DCGANTrainer(config, real_images=real_images, device=CPU)


def test_latent_batches_have_latent_dim(trainer):
    z = trainer.sample_latent(5)
    assert z.shape == (5, 8)


def test_discriminator_batch_is_generated_then_real(trainer):
    real = trainer.cursor.next_batch()
    combined, targets, fake = trainer.build_discriminator_batch(real)

    assert combined.shape == (8, 3, 16, 16)
    assert torch.equal(combined[:4], fake)
    assert torch.equal(combined[4:], real)
    assert targets[:4].min() >= 0.0 and targets[:4].max() <= 0.5
    assert targets[4:].min() >= 1.0 and targets[4:].max() <= 1.5


def test_discriminator_step_updates_discriminator_only(trainer):
    real = trainer.cursor.next_batch()
    combined, targets, _ = trainer.build_discriminator_batch(real)
    d_before = snapshot(trainer.model.discriminator)
    g_before = snapshot(trainer.model.generator)

    loss = trainer.discriminator_step(combined, targets)

    assert math.isfinite(loss)
    assert changed(d_before, trainer.model.discriminator)
    assert not changed(g_before, trainer.model.generator)


def test_adversarial_step_updates_generator_only(trainer):
    # Populate discriminator gradients first, the composite step must ignore them
    real = trainer.cursor.next_batch()
    trainer.discriminator_step(*trainer.build_discriminator_batch(real)[:2])
    d_before = snapshot(trainer.model.discriminator)
    g_before = snapshot(trainer.model.generator)

    loss = trainer.adversarial_step(trainer.sample_latent(4))

    assert math.isfinite(loss)
    assert changed(g_before, trainer.model.generator)
    assert not changed(d_before, trainer.model.discriminator)
    assert all(p.requires_grad for p in trainer.model.discriminator.parameters())


def test_learning_rate_decays_per_update(config, real_images):
    config['lr_decay'] = 0.5
    trainer = DCGANTrainer(config, real_images=real_images, device=CPU)
    trainer.train_step()
    trainer.train_step()

    assert trainer.d_optimizer.param_groups[0]['lr'] == pytest.approx(8e-4 / 2.0)
    assert trainer.g_optimizer.param_groups[0]['lr'] == pytest.approx(4e-4 / 2.0)


def test_five_steps_over_one_hundred_images(config, real_images):
    config['batch_size'] = 20
    trainer = DCGANTrainer(config, real_images=real_images, device=CPU)

    d_batches, g_batches = [], []
    discriminator_step = trainer.discriminator_step
    adversarial_step = trainer.adversarial_step

    def record_d(images, targets):
        d_batches.append(images.clone())
        return discriminator_step(images, targets)

    def record_g(z):
        g_batches.append(z.clone())
        return adversarial_step(z)

    trainer.discriminator_step = record_d
    trainer.adversarial_step = record_g

    for _ in range(5):
        trainer.train_step()

    assert [b.size(0) for b in d_batches] == [40] * 5
    assert [b.shape for b in g_batches] == [(20, 8)] * 5
    for i, batch in enumerate(d_batches):
        assert torch.equal(batch[20:], real_images[i * 20:(i + 1) * 20])
    assert not any(torch.equal(g_batches[i], g_batches[i + 1]) for i in range(4))
    assert trainer.cursor.offset == 0
    assert trainer.global_step == 5


def test_checkpoints_and_samples_every_interval(config, real_images, monkeypatch):
    config.update({'batch_size': 2, 'num_iterations': 300, 'save_every': 100})
    writes = []
    save_checkpoint = train_module.save_checkpoint

    def record_save(trainer, filepath):
        writes.append(trainer.global_step)
        save_checkpoint(trainer, filepath)

    monkeypatch.setattr(train_module, 'save_checkpoint', record_save)

    trainer = DCGANTrainer(config, real_images=real_images, device=CPU)
    trainer.train()

    assert writes == [100, 200, 300]
    assert os.path.exists(trainer.checkpoint_path)
    assert sorted(os.listdir(trainer.config['sample_dir'])) == sorted(
        [f"generated_{s}.png" for s in (100, 200, 300)] + [f"real_{s}.png" for s in (100, 200, 300)]
    )
    with open(os.path.join(trainer.config['log_dir'], 'training_log.txt')) as f:
        lines = f.read().splitlines()
    assert [line.split(':')[0] for line in lines] == ['Step 100', 'Step 200', 'Step 300']


def test_train_step_with_targets_above_one(config, real_images):
    config.update({'real_label': 1.0, 'label_noise': 0.5})
    trainer = DCGANTrainer(config, real_images=real_images, device=CPU)

    for _ in range(3):
        output = trainer.train_step()
        assert math.isfinite(output['d_loss'])
        assert math.isfinite(output['adversarial_loss'])
    assert trainer.global_step == 3


def test_divergent_discriminator_loss_halts_before_update(config):
    trainer = DCGANTrainer(config, real_images=torch.full((100, 3, 16, 16), float('nan')), device=CPU)
    d_before = snapshot(trainer.model.discriminator)

    with pytest.raises(FloatingPointError, match="Discriminator loss is nan at step 1"):
        trainer.train_step()

    assert not changed(d_before, trainer.model.discriminator)
    assert trainer.global_step == 0


def test_divergent_adversarial_loss_halts_before_update(trainer):
    g_before = snapshot(trainer.model.generator)

    with pytest.raises(FloatingPointError, match="Adversarial loss"):
        trainer.adversarial_step(torch.full((4, 8), float('nan')))

    assert not changed(g_before, trainer.model.generator)


def test_divergence_check_can_be_disabled(config):
    config['halt_on_nan'] = False
    trainer = DCGANTrainer(config, real_images=torch.full((100, 3, 16, 16), float('nan')), device=CPU)

    assert math.isnan(trainer.train_step()['d_loss'])


def test_checkpoint_write_failure_is_fatal(trainer, tmp_path):
    blocker = tmp_path / 'blocker'
    blocker.write_text('')
    trainer.checkpoint_path = str(blocker / 'gan.pth')

    with pytest.raises((OSError, RuntimeError)):
        trainer.save_artifacts(trainer.train_step())


def test_sample_write_failure_is_fatal(trainer, tmp_path):
    blocker = tmp_path / 'blocker'
    blocker.write_text('')
    trainer.config['sample_dir'] = str(blocker)

    with pytest.raises((OSError, RuntimeError)):
        trainer.save_artifacts(trainer.train_step())


def test_trainer_leaves_callers_config_untouched(config, real_images):
    original = dict(config)
    first = DCGANTrainer(config, real_images=real_images, device=CPU)
    second = DCGANTrainer(config, real_images=real_images, device=CPU)

    assert config == original
    assert first.config['sample_dir'] == second.config['sample_dir'] == \
        os.path.join(original['sample_dir'], original['experiment_name'])


def test_resume_restores_state(config, real_images, tmp_path):
    trainer = DCGANTrainer(config, real_images=real_images, device=CPU)
    for _ in range(3):
        trainer.train_step()
    trainer.save_artifacts(trainer.train_step())

    resumed_config = dict(config)
    resumed_config['resume_from'] = trainer.checkpoint_path
    resumed_config['experiment_name'] = 'resumed'
    resumed = DCGANTrainer(resumed_config, real_images=real_images, device=CPU)

    assert resumed.global_step == 4
    assert resumed.cursor.offset == trainer.cursor.offset == 16
    assert not changed(snapshot(trainer.model), resumed.model)


def test_sampler_loads_training_checkpoint(trainer):
    trainer.save_artifacts(trainer.train_step())

    sampler = DCGANSampler(trainer.checkpoint_path)
    samples = sampler.sample_random(4)
    assert samples.shape == (4, 3, 16, 16)
    assert samples.min() >= 0.0 and samples.max() <= 1.0

    strip = sampler.interpolate_latent(torch.zeros(1, 8), torch.ones(1, 8), num_steps=5)
    assert strip.shape == (5, 3, 16, 16)
