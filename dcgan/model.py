"""
Deep Convolutional GAN (DCGAN) networks.

This module implements the generator and discriminator networks, the DCGAN
container that owns them, and the adversarial composite D(G(z)) used to train
the generator against a frozen discriminator.
"""

import torch
import torch.nn as nn
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from dcgan.utils import get_device, count_parameters


def check_shape(tensor: torch.Tensor, expected: Tuple[Optional[int], ...], stage: str):
    """
    Raise ValueError when tensor does not have the expected shape.

    Args:
        tensor: Tensor to check
        expected: Expected shape, None matches any size along that dimension
        stage: Name of the stage, used in the error message
    """
    if tensor.dim() != len(expected) or any(
        e is not None and s != e for s, e in zip(tensor.shape, expected)
    ):
        raise ValueError(f"{stage}: expected shape {expected}, got {tuple(tensor.shape)}")


@contextmanager
def frozen(module: nn.Module):
    """
    Mark every parameter of module as non-trainable for the duration of the block.

    The previous requires_grad flags are restored on exit, so the module stays
    trainable through its own optimizer outside the block.
    """
    params = list(module.parameters())
    flags = [p.requires_grad for p in params]
    for p in params:
        p.requires_grad_(False)
    try:
        yield module
    finally:
        for p, flag in zip(params, flags):
            p.requires_grad_(flag)


class Generator(nn.Module):
    """
    DCGAN Generator.

    Projects a latent vector to a feature map of half the target resolution,
    upsamples it once with a strided transposed convolution and refines it
    with plain convolutions.
    """

    def __init__(self,
                 latent_dim: int = 32,
                 out_channels: int = 3,
                 image_size: int = 32,
                 base_channels: int = 128,
                 conv_channels: int = 256,
                 negative_slope: float = 0.2):
        """
        Initialize the generator.

        Args:
            latent_dim: Dimension of the latent space (noise input)
            out_channels: Number of output channels (3 for RGB)
            image_size: Size of output images (assumed square, even)
            base_channels: Channels of the projected feature map
            conv_channels: Channels of the intermediate convolutions
            negative_slope: Slope of the leaky ReLU activations
        """
        super().__init__()

        if image_size % 2 != 0:
            raise ValueError(f"image_size must be even, got {image_size}")

        self.latent_dim = latent_dim
        self.out_channels = out_channels
        self.image_size = image_size
        self.base_channels = base_channels
        self.initial_size = image_size // 2

        self.fc = nn.Sequential(
            nn.Linear(latent_dim, base_channels * self.initial_size ** 2),
            nn.LeakyReLU(negative_slope)
        )

        # Kernel 4 is divisible by stride 2, which keeps pixel coverage even
        self.generator = nn.Sequential(
            nn.Conv2d(base_channels, conv_channels, kernel_size=5, padding=2),
            nn.LeakyReLU(negative_slope),
            nn.ConvTranspose2d(conv_channels, conv_channels, kernel_size=4, stride=2, padding=1),
            nn.LeakyReLU(negative_slope),
            nn.Conv2d(conv_channels, conv_channels, kernel_size=5, padding=2),
            nn.LeakyReLU(negative_slope),
            nn.Conv2d(conv_channels, conv_channels, kernel_size=5, padding=2),
            nn.LeakyReLU(negative_slope),
            nn.Conv2d(conv_channels, out_channels, kernel_size=7, padding=3),
            nn.Tanh()  # Output values between -1 and 1
        )

    def forward(self, z: torch.Tensor) -> torch.Tensor:
        """
        Forward pass of the generator.

        Args:
            z: Latent tensor of shape (batch_size, latent_dim)

        Returns:
            Generated image tensor of shape (batch_size, channels, height, width)
        """
        check_shape(z, (None, self.latent_dim), "Generator input")

        x = self.fc(z)
        x = x.view(x.size(0), self.base_channels, self.initial_size, self.initial_size)
        x = self.generator(x)

        check_shape(x, (z.size(0), self.out_channels, self.image_size, self.image_size),
                    "Generator output")
        return x


class Discriminator(nn.Module):
    """
    DCGAN Discriminator.

    Classifies images as real or fake with four strided convolutions,
    dropout and a sigmoid output.
    """

    num_downsamples = 4

    def __init__(self,
                 in_channels: int = 3,
                 image_size: int = 32,
                 hidden_channels: int = 128,
                 dropout: float = 0.4,
                 negative_slope: float = 0.2):
        """
        Initialize the discriminator.

        Args:
            in_channels: Number of input channels (3 for RGB)
            image_size: Size of input images (assumed square, divisible by 16)
            hidden_channels: Channels of every convolution
            dropout: Fraction of flattened features zeroed during training
            negative_slope: Slope of the leaky ReLU activations
        """
        super().__init__()

        factor = 2 ** self.num_downsamples
        if image_size % factor != 0:
            raise ValueError(f"image_size must be divisible by {factor}, got {image_size}")

        self.in_channels = in_channels
        self.image_size = image_size

        modules = []
        channels = in_channels
        for _ in range(self.num_downsamples):
            modules.extend([
                nn.Conv2d(channels, hidden_channels, kernel_size=4, stride=2, padding=1),
                nn.LeakyReLU(negative_slope)
            ])
            channels = hidden_channels

        self.discriminator = nn.Sequential(*modules)

        self.conv_output_size = image_size // factor

        self.classifier = nn.Sequential(
            nn.Dropout(dropout),
            nn.Linear(hidden_channels * self.conv_output_size ** 2, 1)
        )
        self.output = nn.Sigmoid()  # Output probability between 0 and 1

    def logits(self, x: torch.Tensor) -> torch.Tensor:
        """
        Pre-sigmoid scores of the discriminator.

        Args:
            x: Input tensor of shape (batch_size, channels, height, width)

        Returns:
            Logit tensor of shape (batch_size, 1)
        """
        check_shape(x, (None, self.in_channels, self.image_size, self.image_size),
                    "Discriminator input")

        x = self.discriminator(x)
        x = x.view(x.size(0), -1)
        return self.classifier(x)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Forward pass of the discriminator.

        Args:
            x: Input tensor of shape (batch_size, channels, height, width)

        Returns:
            Probability tensor of shape (batch_size, 1)
        """
        return self.output(self.logits(x))


class AdversarialComposite(nn.Module):
    """
    Generator followed by discriminator, D(G(z)).

    The composite references the same generator and discriminator instances
    as the DCGAN container. Only generator parameters are exposed for
    optimization, and the discriminator runs frozen inside forward.
    """

    def __init__(self, generator: Generator, discriminator: Discriminator):
        super().__init__()
        self.generator = generator
        self.discriminator = discriminator

    def trainable_parameters(self) -> Iterator[nn.Parameter]:
        return self.generator.parameters()

    def logits(self, z: torch.Tensor) -> torch.Tensor:
        images = self.generator(z)
        with frozen(self.discriminator):
            return self.discriminator.logits(images)

    def forward(self, z: torch.Tensor) -> torch.Tensor:
        return self.discriminator.output(self.logits(z))


class DCGAN(nn.Module):
    """
    Container owning the generator and the discriminator.

    Its state dict is what gets checkpointed.
    """

    def __init__(self,
                 latent_dim: int = 32,
                 in_channels: int = 3,
                 image_size: int = 32,
                 g_base_channels: int = 128,
                 g_conv_channels: int = 256,
                 d_hidden_channels: int = 128,
                 dropout: float = 0.4,
                 negative_slope: float = 0.2,
                 device: Optional[torch.device] = None):
        """
        Initialize the DCGAN.

        Args:
            latent_dim: Dimension of the latent space
            in_channels: Number of image channels
            image_size: Size of input/output images (assumed square)
            g_base_channels: Channels of the generator's projected feature map
            g_conv_channels: Channels of the generator's convolutions
            d_hidden_channels: Channels of the discriminator's convolutions
            dropout: Discriminator dropout fraction
            negative_slope: Slope of the leaky ReLU activations
            device: Device to place the model on (best available if None)
        """
        super().__init__()

        self.latent_dim = latent_dim
        self.in_channels = in_channels
        self.image_size = image_size

        self.generator = Generator(latent_dim, in_channels, image_size,
                                   g_base_channels, g_conv_channels, negative_slope)
        self.discriminator = Discriminator(in_channels, image_size, d_hidden_channels,
                                           dropout, negative_slope)

        self.device = device if device is not None else get_device()
        self.to(self.device)

    def composite(self) -> AdversarialComposite:
        """Build the adversarial composite over this model's networks."""
        return AdversarialComposite(self.generator, self.discriminator)

    def sample(self, num_samples: int = 1, z: Optional[torch.Tensor] = None) -> torch.Tensor:
        """
        Sample images from the generator.

        Args:
            num_samples: Number of samples to generate
            z: Optional latent vectors to generate from (if None, sample from prior)

        Returns:
            Generated image tensor
        """
        if z is None:
            z = torch.randn(num_samples, self.latent_dim, device=self.device)

        with torch.no_grad():
            samples = self.generator(z)

        return samples


if __name__ == "__main__":
    model = DCGAN()

    batch_size = 4
    z = torch.randn(batch_size, model.latent_dim, device=model.device)
    fake_images = model.generator(z)
    fake_probs = model.discriminator(fake_images)

    print(f"DCGAN Model Summary:")
    print(f"  Generator parameters: {count_parameters(model.generator):,}")
    print(f"  Discriminator parameters: {count_parameters(model.discriminator):,}")
    print(f"  Total parameters: {count_parameters(model):,}")
    print(f"  Input shape: {z.shape}")
    print(f"  Generated shape: {fake_images.shape}")
    print(f"  Fake probs shape: {fake_probs.shape}")
    print(f"  Using device: {model.device}")
