"""
DCGAN Trainer.

This module provides the training loop: alternating discriminator updates on
mixed generated/real batches and generator updates through the adversarial
composite, with periodic checkpointing, loss logging and sample images.
"""

import torch
import os
import math
import argparse
from tqdm import tqdm
from torchvision.io import write_png
from typing import Dict, Any, Optional, Tuple

# Import our modules
from dcgan.model import DCGAN, check_shape
from dcgan.losses import GANLoss
from dcgan.data import load_real_images, denormalize_images, RealImageCursor
from dcgan.utils import (
    set_seed, gradient_clip, save_checkpoint, load_checkpoint, get_device,
    log_hyperparameters, create_lr_scheduler, create_optimizer, log_metrics,
    plot_losses, load_config, print_model_summary
)


class DCGANTrainer:
    """
    DCGAN Trainer for a single class of an image dataset.
    Handles training loop, logging, and checkpointing.
    """

    def __init__(self, config: Dict[str, Any], real_images: Optional[torch.Tensor] = None,
                 device: Optional[torch.device] = None):
        """
        Initialize the DCGAN trainer.

        Args:
            config: Configuration dictionary
            real_images: Real images of shape (N, C, H, W); loaded from
                config['dataset'] when None
            device: Device to train on (best available if None)
        """
        # Own copy, directory keys are rewritten below
        config = dict(config)
        self.config = config
        self.device = device if device is not None else get_device()
        self.experiment_name = config['experiment_name']

        # Set seed for reproducibility
        set_seed(config['seed'])

        self.model = DCGAN(
            latent_dim=config['latent_dim'],
            in_channels=config['in_channels'],
            image_size=config['image_size'],
            g_base_channels=config['g_base_channels'],
            g_conv_channels=config['g_conv_channels'],
            d_hidden_channels=config['d_hidden_channels'],
            dropout=config['dropout'],
            negative_slope=config['negative_slope'],
            device=self.device
        )
        self.composite = self.model.composite()

        self.loss_fn = GANLoss(
            real_label=config['real_label'],
            fake_label=config['fake_label'],
            label_noise=config['label_noise']
        )

        # The discriminator optimizer owns D's parameters, the composite's owns G's
        self.d_optimizer = create_optimizer(
            self.model.discriminator.parameters(),
            optimizer_type=config['optimizer_type'],
            learning_rate=config['d_learning_rate']
        )
        self.g_optimizer = create_optimizer(
            self.composite.trainable_parameters(),
            optimizer_type=config['optimizer_type'],
            learning_rate=config['g_learning_rate']
        )

        self.d_scheduler = create_lr_scheduler(
            self.d_optimizer,
            scheduler_type=config['scheduler_type'],
            decay=config['lr_decay'],
            num_training_steps=config['num_iterations']
        )
        self.g_scheduler = create_lr_scheduler(
            self.g_optimizer,
            scheduler_type=config['scheduler_type'],
            decay=config['lr_decay'],
            num_training_steps=config['num_iterations']
        )

        if real_images is None:
            real_images = load_real_images(config)
        check_shape(real_images, (None, config['in_channels'], config['image_size'], config['image_size']),
                    "Real images")
        self.cursor = RealImageCursor(real_images.to(self.device), config['batch_size'])

        # Training state
        self.global_step = 0
        self._log_started = False

        # Create directories
        config['checkpoint_dir'] = os.path.join(config['checkpoint_dir'], self.experiment_name)
        config['log_dir'] = os.path.join(config['log_dir'], self.experiment_name)
        config['sample_dir'] = os.path.join(config['sample_dir'], self.experiment_name)
        os.makedirs(config['checkpoint_dir'], exist_ok=True)
        os.makedirs(config['log_dir'], exist_ok=True)
        os.makedirs(config['sample_dir'], exist_ok=True)
        self.checkpoint_path = os.path.join(config['checkpoint_dir'], config['checkpoint_name'])

        # Log hyperparameters
        log_hyperparameters(config, config['log_dir'])

        # Print model summary
        print_model_summary(self.model)

        if config['resume_from']:
            load_checkpoint(self, config['resume_from'])
            self._log_started = True

    def sample_latent(self, batch_size: int) -> torch.Tensor:
        """Draw a batch of standard normal latent vectors."""
        return torch.randn(batch_size, self.config['latent_dim'], device=self.device)

    def build_discriminator_batch(self, real_images: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
        """
        Build the combined discriminator batch for one step.

        Args:
            real_images: Real images read from the cursor

        Returns:
            Tuple of (combined images, jittered targets, generated images).
            Generated images come first in the combined batch.
        """
        batch_size = real_images.size(0)
        z = self.sample_latent(batch_size)

        with torch.no_grad():
            fake_images = self.model.generator(z)

        combined = torch.cat([fake_images, real_images])
        targets = self.loss_fn.discriminator_targets(batch_size, batch_size, device=self.device)
        return combined, targets, fake_images

    def _check_finite(self, loss: torch.Tensor, name: str):
        """Raise before any update when a loss is NaN or infinite."""
        value = loss.item()
        if self.config['halt_on_nan'] and not math.isfinite(value):
            raise FloatingPointError(
                f"{name} loss is {value} at step {self.global_step + 1}, training diverged"
            )

    def discriminator_step(self, images: torch.Tensor, targets: torch.Tensor) -> float:
        """
        One discriminator update.

        Args:
            images: Combined generated and real images
            targets: Targets matching images

        Returns:
            Discriminator loss
        """
        self.model.discriminator.train()
        self.d_optimizer.zero_grad()

        logits = self.model.discriminator.logits(images)
        d_loss = self.loss_fn(logits, targets)
        self._check_finite(d_loss, "Discriminator")
        d_loss.backward()

        gradient_clip(self.model.discriminator.parameters(), self.config['clip_value'])
        self.d_optimizer.step()
        self.d_scheduler.step()

        return d_loss.item()

    def adversarial_step(self, z: torch.Tensor) -> float:
        """
        One generator update through the frozen-discriminator composite.

        Args:
            z: Latent vectors of shape (batch_size, latent_dim)

        Returns:
            Adversarial loss
        """
        self.composite.train()
        self.g_optimizer.zero_grad()

        logits = self.composite.logits(z)
        targets = self.loss_fn.generator_targets(z.size(0), device=self.device)
        g_loss = self.loss_fn(logits, targets)
        self._check_finite(g_loss, "Adversarial")
        g_loss.backward()

        gradient_clip(self.composite.trainable_parameters(), self.config['clip_value'])
        self.g_optimizer.step()
        self.g_scheduler.step()

        return g_loss.item()

    def train_step(self) -> Dict[str, Any]:
        """
        Single training step.

        Returns:
            Dictionary containing loss values and one generated and one real image
        """
        real_images = self.cursor.next_batch()
        combined, targets, fake_images = self.build_discriminator_batch(real_images)
        d_loss = self.discriminator_step(combined, targets)

        # Fresh latent vectors, never the ones used for the discriminator batch
        z = self.sample_latent(real_images.size(0))
        adversarial_loss = self.adversarial_step(z)

        self.global_step += 1

        return {
            'd_loss': d_loss,
            'adversarial_loss': adversarial_loss,
            'fake_image': fake_images[0],
            'real_image': real_images[0],
        }

    def save_artifacts(self, step_output: Dict[str, Any]):
        """
        Write the checkpoint, log the losses and save one generated and one real image.

        Args:
            step_output: Output of train_step
        """
        save_checkpoint(self, self.checkpoint_path)

        log_metrics(self.config['log_dir'], step_output['d_loss'], step_output['adversarial_loss'],
                    self.global_step, reset=not self._log_started)
        self._log_started = True

        for name in ('fake', 'real'):
            image = denormalize_images(step_output[f'{name}_image'].detach().cpu(),
                                       normalized=self.config['normalize'])
            prefix = 'generated' if name == 'fake' else 'real'
            write_png(image, os.path.join(self.config['sample_dir'], f"{prefix}_{self.global_step}.png"))

    def train(self):
        """
        Main training loop.
        """
        print(f"Starting DCGAN training on {self.device}")
        print(f"Experiment: {self.experiment_name}")

        pbar = tqdm(range(self.global_step, self.config['num_iterations']), desc="Training")
        for _ in pbar:
            step_output = self.train_step()

            pbar.set_postfix({
                'D Loss': f"{step_output['d_loss']:.4f}",
                'Adv Loss': f"{step_output['adversarial_loss']:.4f}"
            })

            if self.global_step % self.config['save_every'] == 0:
                self.save_artifacts(step_output)

        print("Training completed!")


def get_default_config():
    """
    Get default configuration for training.

    Returns:
        Configuration dictionary
    """
    return {
        # Model parameters
        'image_size': 32,
        'in_channels': 3,
        'latent_dim': 32,
        'g_base_channels': 128,
        'g_conv_channels': 256,
        'd_hidden_channels': 128,
        'negative_slope': 0.2,
        'dropout': 0.4,

        # Training parameters
        'num_iterations': 10000,
        'batch_size': 20,
        'd_learning_rate': 8e-4,
        'g_learning_rate': 4e-4,
        'optimizer_type': 'rmsprop', # 'rmsprop' or 'adam' or 'sgd'
        'scheduler_type': 'inverse_time', # 'inverse_time' or 'constant' or 'cosine'
        'lr_decay': 1e-8,
        'clip_value': 1.0,
        'save_every': 100,
        'seed': 42,
        'halt_on_nan': True,
        'resume_from': None,

        # Loss parameters
        'real_label': 1.0,
        'fake_label': 0.0,
        'label_noise': 0.5,

        # Data parameters
        'dataset': 'cifar10', # 'cifar10' or 'mnist'
        'class_label': 6, # frog
        'normalize': False, # False: [0, 1], True: [-1, 1]

        # Logging and saving
        'checkpoint_dir': 'checkpoints',
        'log_dir': 'logs',
        'sample_dir': 'samples',
        'data_dir': 'data',
        'checkpoint_name': 'gan.pth',
        'experiment_name': 'frog_dcgan',
    }


def main():
    """
    Main function to run DCGAN training.
    """
    parser = argparse.ArgumentParser(description="Train a DCGAN on one class of an image dataset")
    parser.add_argument('--config', type=str, help='Path to config file')
    parser.add_argument('--resume', type=str, help='Path to checkpoint to resume from')
    parser.add_argument('--iterations', type=int, help='Number of training steps')
    parser.add_argument('--batch-size', type=int, help='Batch size')
    parser.add_argument('--d-lr', type=float, help='Discriminator learning rate')
    parser.add_argument('--g-lr', type=float, help='Generator (adversarial) learning rate')
    parser.add_argument('--save-every', type=int, help='Checkpoint interval in steps')

    args = parser.parse_args()

    # Load configuration
    config = get_default_config()
    if args.config:
        config = load_config(args.config, config)

    # Override with command line arguments
    if args.iterations:
        config['num_iterations'] = args.iterations
    if args.batch_size:
        config['batch_size'] = args.batch_size
    if args.d_lr:
        config['d_learning_rate'] = args.d_lr
    if args.g_lr:
        config['g_learning_rate'] = args.g_lr
    if args.save_every:
        config['save_every'] = args.save_every
    if args.resume:
        config['resume_from'] = args.resume

    trainer = DCGANTrainer(config)
    trainer.train()

    # Plot losses
    log_file = os.path.join(trainer.config['log_dir'], "training_log.txt")
    if os.path.exists(log_file):
        plot_losses(log_file, os.path.join(trainer.config['log_dir'], "loss_plot.png"))


if __name__ == "__main__":
    main()
