import pytest
import torch

from dcgan.train import get_default_config


@pytest.fixture
def config(tmp_path):
    """Small CPU configuration writing every artifact under tmp_path."""
    config = get_default_config()
    config.update({
        'image_size': 16,
        'latent_dim': 8,
        'g_base_channels': 4,
        'g_conv_channels': 4,
        'd_hidden_channels': 4,
        'batch_size': 4,
        'num_iterations': 6,
        'save_every': 2,
        'checkpoint_dir': str(tmp_path / 'checkpoints'),
        'log_dir': str(tmp_path / 'logs'),
        'sample_dir': str(tmp_path / 'samples'),
        'data_dir': str(tmp_path / 'data'),
        'experiment_name': 'test',
    })
    return config


@pytest.fixture
def real_images():
    torch.manual_seed(0)
    return torch.rand(100, 3, 16, 16)


def snapshot(module):
    return {name: p.detach().clone() for name, p in module.named_parameters()}


def changed(before, module):
    return any(not torch.equal(before[name], p.detach()) for name, p in module.named_parameters())
