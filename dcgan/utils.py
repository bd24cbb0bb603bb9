import torch
import torch.nn as nn
import random
import numpy as np
import os
import importlib.util
from typing import Dict, Any, Iterable
import matplotlib.pyplot as plt


def set_seed(seed: int):
    """
    Set random seed for reproducibility.

    Args:
        seed: Random seed
    """
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)
    torch.cuda.manual_seed_all(seed)
    torch.backends.cudnn.deterministic = True
    torch.backends.cudnn.benchmark = False
    os.environ['PYTHONHASHSEED'] = str(seed)


def gradient_clip(parameters: Iterable[torch.nn.Parameter], clip_value: float = 1.0):
    """
    Clip every gradient component to [-clip_value, clip_value].

    Args:
        parameters: Parameters whose gradients are clipped
        clip_value: Maximum absolute value of a gradient component
    """
    torch.nn.utils.clip_grad_value_(parameters, clip_value)


def count_parameters(model: nn.Module) -> int:
    """
    Count the number of trainable parameters in a model.

    Args:
        model: Model to count parameters for

    Returns:
        Number of trainable parameters
    """
    return sum(p.numel() for p in model.parameters() if p.requires_grad)


def get_device() -> torch.device:
    """
    Get the best available device.

    Returns:
        Device to use
    """
    if torch.cuda.is_available():
        return torch.device("cuda")
    elif torch.backends.mps.is_available():
        return torch.device("mps")
    else:
        return torch.device("cpu")


def create_optimizer(parameters: Iterable[torch.nn.Parameter], optimizer_type: str = "rmsprop",
                     learning_rate: float = 1e-4, **kwargs) -> torch.optim.Optimizer:
    """
    Create optimizer.

    Args:
        parameters: Parameters to optimize
        optimizer_type: Type of optimizer ("rmsprop", "adam", "sgd")
        learning_rate: Learning rate
        **kwargs: Additional arguments for optimizer

    Returns:
        Optimizer
    """
    if optimizer_type == "rmsprop":
        return torch.optim.RMSprop(parameters, lr=learning_rate, **kwargs)
    elif optimizer_type == "adam":
        return torch.optim.Adam(parameters, lr=learning_rate, **kwargs)
    elif optimizer_type == "sgd":
        return torch.optim.SGD(parameters, lr=learning_rate, **kwargs)
    else:
        raise ValueError(f"Unknown optimizer type: {optimizer_type}")


def create_lr_scheduler(optimizer: torch.optim.Optimizer,
                        scheduler_type: str = "inverse_time",
                        decay: float = 1e-8,
                        num_training_steps: int = 100000) -> torch.optim.lr_scheduler.LRScheduler:
    """
    Create learning rate scheduler. Schedulers are stepped once per update.

    Args:
        optimizer: Optimizer
        scheduler_type: Type of scheduler ("inverse_time", "constant", "cosine")
        decay: Decay factor for "inverse_time": lr_t = lr / (1 + decay * t)
        num_training_steps: Total number of training steps, used by "cosine"

    Returns:
        Learning rate scheduler
    """
    if scheduler_type == "inverse_time":
        from torch.optim.lr_scheduler import LambdaLR
        scheduler = LambdaLR(optimizer, lr_lambda=lambda step: 1.0 / (1.0 + decay * step))
    elif scheduler_type == "constant":
        from torch.optim.lr_scheduler import LambdaLR
        scheduler = LambdaLR(optimizer, lr_lambda=lambda step: 1.0)
    elif scheduler_type == "cosine":
        from torch.optim.lr_scheduler import CosineAnnealingLR
        scheduler = CosineAnnealingLR(optimizer, T_max=num_training_steps)
    else:
        raise ValueError(f"Unknown scheduler type: {scheduler_type}")

    return scheduler


def save_checkpoint(trainer, filepath: str):
    """
    Save the trainer state, overwriting any previous checkpoint at filepath.

    Args:
        trainer: DCGANTrainer to save
        filepath: Destination file
    """
    checkpoint = {
        'global_step': trainer.global_step,
        'cursor_offset': trainer.cursor.offset,
        'model_state_dict': trainer.model.state_dict(),
        'd_optimizer_state_dict': trainer.d_optimizer.state_dict(),
        'g_optimizer_state_dict': trainer.g_optimizer.state_dict(),
        'd_scheduler_state_dict': trainer.d_scheduler.state_dict(),
        'g_scheduler_state_dict': trainer.g_scheduler.state_dict(),
        'config': {k: v for k, v in trainer.config.items() if k in MODEL_KEYS},
    }
    torch.save(checkpoint, filepath)


def load_checkpoint(trainer, checkpoint_path: str):
    """
    Restore a trainer from a checkpoint written by save_checkpoint.

    Args:
        trainer: DCGANTrainer to load checkpoint into
        checkpoint_path: Path to checkpoint file
    """
    checkpoint = torch.load(checkpoint_path, map_location=trainer.device)

    trainer.model.load_state_dict(checkpoint['model_state_dict'])
    trainer.d_optimizer.load_state_dict(checkpoint['d_optimizer_state_dict'])
    trainer.g_optimizer.load_state_dict(checkpoint['g_optimizer_state_dict'])
    trainer.d_scheduler.load_state_dict(checkpoint['d_scheduler_state_dict'])
    trainer.g_scheduler.load_state_dict(checkpoint['g_scheduler_state_dict'])
    trainer.global_step = checkpoint['global_step']
    trainer.cursor.offset = checkpoint['cursor_offset']

    print(f"Checkpoint loaded from {checkpoint_path}")
    print(f"Resuming at step {trainer.global_step}")


# Configuration keys needed to rebuild the networks and read their output from a checkpoint
MODEL_KEYS = (
    'latent_dim', 'image_size', 'in_channels', 'g_base_channels',
    'g_conv_channels', 'd_hidden_channels', 'negative_slope', 'dropout', 'normalize',
)


def log_hyperparameters(config: Dict[str, Any], log_dir: str = "logs"):
    """
    Log hyperparameters to file.

    Args:
        config: Configuration dictionary
        log_dir: Directory to save logs
    """
    os.makedirs(log_dir, exist_ok=True)

    with open(os.path.join(log_dir, "config.txt"), "w") as f:
        for key, value in config.items():
            f.write(f"{key}: {value}\n")


def log_metrics(log_dir: str, d_loss: float, adversarial_loss: float, step: int, reset: bool = False):
    """
    Append the discriminator and adversarial losses of a step to the training log.

    Args:
        log_dir: Directory holding training_log.txt
        d_loss: Discriminator loss
        adversarial_loss: Adversarial (generator) loss
        step: Current step
        reset: Start the log file from scratch
    """
    log_file = os.path.join(log_dir, "training_log.txt")
    if reset and os.path.exists(log_file):
        os.remove(log_file)
    with open(log_file, "a") as f:
        f.write(f"Step {step}: D Loss: {d_loss:.6f}, Adversarial Loss: {adversarial_loss:.6f}\n")

    print(f"Step {step}: D Loss: {d_loss:.6f}, Adversarial Loss: {adversarial_loss:.6f}")


def compute_model_size_mb(model: nn.Module) -> float:
    """
    Compute model size in MB.

    Args:
        model: Model to compute size for

    Returns:
        Model size in MB
    """
    param_size = 0
    buffer_size = 0

    for param in model.parameters():
        param_size += param.nelement() * param.element_size()

    for buffer in model.buffers():
        buffer_size += buffer.nelement() * buffer.element_size()

    size_mb = (param_size + buffer_size) / 1024 / 1024
    return size_mb


def print_model_summary(model: nn.Module):
    """
    Print model summary including parameter count and size.

    Args:
        model: Model to summarize
    """
    total_params = count_parameters(model)
    model_size = compute_model_size_mb(model)

    print(f"Model Summary:")
    print(f"  Total parameters: {total_params:,}")
    print(f"  Model size: {model_size:.2f} MB")
    print(f"  Model structure:")
    print(model)


def load_config(config_path: str, default_config: dict) -> dict:
    """
    Load configuration from a Python file.

    Args:
        config_path: Path to configuration file
        default_config: Configuration updated with the file's DEFAULT_CONFIG

    Returns:
        Configuration dictionary
    """
    config = dict(default_config)

    spec = importlib.util.spec_from_file_location("config", config_path)
    config_module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(config_module)

    if hasattr(config_module, 'DEFAULT_CONFIG'):
        config.update(config_module.DEFAULT_CONFIG)

    return config


def plot_losses(log_file: str, save_path: str):
    """
    Plot discriminator and adversarial losses from the training log.

    Args:
        log_file: Path to training log file
        save_path: Path to save the plot
    """
    d_losses = []
    adversarial_losses = []
    steps = []

    with open(log_file, 'r') as f:
        for line in f:
            if line.startswith('Step'):
                # "Step X: D Loss: 0.123456, Adversarial Loss: 0.123456"
                parts = line.strip().split(':')
                steps.append(int(parts[0].split()[1]))
                d_losses.append(float(parts[2].split(',')[0]))
                adversarial_losses.append(float(parts[3]))

    plt.figure(figsize=(10, 5))
    plt.plot(steps, d_losses, label='Discriminator Loss')
    plt.plot(steps, adversarial_losses, label='Adversarial Loss')
    plt.xlabel('Steps')
    plt.ylabel('Loss')
    plt.title('DCGAN Losses Over Time')
    plt.legend()
    plt.grid(True)

    plt.savefig(save_path)
    plt.close()
