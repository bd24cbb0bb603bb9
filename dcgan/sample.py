"""
DCGAN Sampler for generating images from a trained generator.

This module loads a training checkpoint and generates random samples or
latent interpolations from it.
"""

import torch
import argparse
import os
import torchvision.utils as vutils

# Import our modules
from dcgan.model import DCGAN
from dcgan.utils import get_device


class DCGANSampler:
    """
    DCGAN Sampler for generating images from trained models.
    """

    def __init__(self, model_path: str):
        """
        Initialize DCGAN sampler.

        Args:
            model_path: Path to a checkpoint written during training
        """
        self.device = get_device()
        self.model_path = model_path

        self.model, self.normalized = self._load_model(model_path)
        self.model.eval()

        print(f"Loaded DCGAN model from {model_path}")
        print(f"Generator parameters: {sum(p.numel() for p in self.model.generator.parameters()):,}")
        print(f"Latent dimension: {self.model.latent_dim}")
        print(f"Image size: {self.model.image_size}")
        print(f"Using device: {self.device}")

    def _load_model(self, model_path: str):
        """
        Rebuild the DCGAN from the configuration stored in the checkpoint.

        Args:
            model_path: Path to model checkpoint

        Returns:
            Tuple of (loaded model, whether training images were in [-1, 1])
        """
        checkpoint = torch.load(model_path, map_location=self.device)

        if 'config' not in checkpoint or 'model_state_dict' not in checkpoint:
            raise ValueError(f"{model_path} is not a DCGAN training checkpoint")

        config = dict(checkpoint['config'])
        normalized = config.pop('normalize', False)

        model = DCGAN(device=self.device, **config)
        model.load_state_dict(checkpoint['model_state_dict'])

        return model, normalized

    def to_image_range(self, samples: torch.Tensor) -> torch.Tensor:
        """Map generator output to [0, 1] the way the training images were scaled."""
        if self.normalized:
            samples = (samples + 1) / 2
        return samples.clamp(0, 1)

    def sample_random(self, num_samples: int = 16) -> torch.Tensor:
        """
        Sample random images from the generator.

        Args:
            num_samples: Number of samples to generate

        Returns:
            Generated image tensor in [0, 1]
        """
        return self.to_image_range(self.model.sample(num_samples=num_samples))

    def interpolate_latent(self, z1: torch.Tensor, z2: torch.Tensor,
                           num_steps: int = 10) -> torch.Tensor:
        """
        Interpolate linearly between two latent vectors.

        Args:
            z1: First latent vector of shape (1, latent_dim)
            z2: Second latent vector of shape (1, latent_dim)
            num_steps: Number of interpolation steps

        Returns:
            Interpolated images in [0, 1]
        """
        z1 = z1.to(self.device)
        z2 = z2.to(self.device)

        alphas = torch.linspace(0, 1, num_steps, device=self.device).view(-1, 1)
        interpolated_z = (1 - alphas) * z1 + alphas * z2

        return self.to_image_range(self.model.sample(z=interpolated_z))

    def save_samples(self, samples: torch.Tensor, filepath: str, nrow: int = 4):
        """
        Save samples as a grid image.

        Args:
            samples: Image tensor in [0, 1]
            filepath: Path to save the image
            nrow: Number of images per row
        """
        grid = vutils.make_grid(samples.cpu(), nrow=nrow, normalize=False, padding=2)
        vutils.save_image(grid, filepath)

        print(f"Saved samples to {filepath}")


def main():
    """
    Main function for DCGAN sampling.
    """
    parser = argparse.ArgumentParser(description="Sample from a trained DCGAN")

    parser.add_argument('--model_path', type=str, required=True, help='Path to training checkpoint')
    parser.add_argument('--output_dir', type=str, default='dcgan_samples', help='Output directory')
    parser.add_argument('--num_samples', type=int, default=16, help='Number of random samples')
    parser.add_argument('--interpolation', action='store_true', help='Generate interpolation')
    parser.add_argument('--interpolation_steps', type=int, default=10, help='Number of interpolation steps')

    args = parser.parse_args()

    os.makedirs(args.output_dir, exist_ok=True)

    sampler = DCGANSampler(args.model_path)

    print("Generating random samples...")
    random_samples = sampler.sample_random(args.num_samples)
    sampler.save_samples(random_samples, os.path.join(args.output_dir, "random_samples.png"))

    if args.interpolation:
        print("Generating interpolation...")
        z1 = torch.randn(1, sampler.model.latent_dim)
        z2 = torch.randn(1, sampler.model.latent_dim)
        interpolated_samples = sampler.interpolate_latent(z1, z2, args.interpolation_steps)
        sampler.save_samples(interpolated_samples, os.path.join(args.output_dir, "interpolation.png"),
                             nrow=args.interpolation_steps)

    print(f"All samples saved to {args.output_dir}")


if __name__ == "__main__":
    main()
